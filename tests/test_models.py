import pytest

from hcmlib.models import (
    LocalsConvention,
    OriginalLocation,
    OwnToken,
    Position,
    ReexportedToken,
    camelcase,
    dashes_camel_case,
    is_remote,
)

LOC = OriginalLocation('/a.css', Position(1, 1), Position(1, 2))


@pytest.mark.parametrize(
    'name,expected',
    [
        ('foo-bar', 'fooBar'),
        ('foo_bar', 'fooBar'),
        ('FooBar', 'fooBar'),
        ('a_2_1', 'a21'),
        ('--foo--bar', 'fooBar'),
        ('a', 'a'),
    ],
)
def test_camelcase(name, expected):
    assert camelcase(name) == expected


@pytest.mark.parametrize(
    'name,expected',
    [
        ('foo-bar', 'fooBar'),
        ('foo_bar', 'foo_bar'),
        ('foo--bar-baz', 'fooBarBaz'),
    ],
)
def test_dashes_camel_case(name, expected):
    assert dashes_camel_case(name) == expected


class TestFormatTokens:
    def test_as_is_is_identity(self):
        tokens = [OwnToken('foo-bar', LOC)]
        assert LocalsConvention.AS_IS.format_tokens(tokens) == tokens

    def test_only_variants_replace(self):
        tokens = [OwnToken('foo-bar', LOC)]
        assert LocalsConvention.CAMEL_CASE_ONLY.format_tokens(tokens) == [OwnToken('fooBar', LOC)]
        assert LocalsConvention.DASHES_ONLY.format_tokens(tokens) == [OwnToken('fooBar', LOC)]

    def test_imported_name_uses_same_transform(self):
        tokens = [ReexportedToken('a-b', 'c-d', LOC)]
        assert LocalsConvention.DASHES_ONLY.format_tokens(tokens) == [
            ReexportedToken('aB', 'cD', LOC)
        ]

    def test_keeping_variants_duplicate(self):
        tokens = [OwnToken('foo-bar', LOC)]
        assert LocalsConvention.CAMEL_CASE.format_tokens(tokens) == [
            OwnToken('foo-bar', LOC),
            OwnToken('fooBar', LOC),
        ]

    def test_from_value(self):
        assert LocalsConvention('camelCaseOnly') is LocalsConvention.CAMEL_CASE_ONLY


def test_is_remote():
    assert is_remote('https://example.com/a.css')
    assert is_remote('http://example.com/a.css')
    assert not is_remote('/a/b.css')
    assert not is_remote('file:///a/b.css')
