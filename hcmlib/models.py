import enum
import re
from typing import Callable, FrozenSet, List, NamedTuple, Optional, Union


class Position(NamedTuple):
    line: int
    column: int


class OriginalLocation(NamedTuple):
    source: Optional[str]
    start: Position
    end: Position


class OwnToken(NamedTuple):
    name: str
    original_location: OriginalLocation


class ReexportedToken(NamedTuple):
    name: str
    imported_name: str
    original_location: OriginalLocation


Token = Union[OwnToken, ReexportedToken]


def camelcase(name: str) -> str:
    """Word-boundary camelCase, e.g. 'foo_bar-baz' -> 'fooBarBaz' and
    'FooBar' -> 'fooBar'.

    """
    name = name.strip()
    if len(name) == 1:
        return name.lower()
    # split fooBar and FOOBar at the case change
    name = re.sub(r'([a-z0-9])([A-Z])', r'\1-\2', name)
    name = re.sub(r'([A-Z])([A-Z][a-z])', r'\1-\2', name)
    name = re.sub(r'^[_.\- ]+', '', name).lower()
    name = re.sub(r'[_.\- ]+(\w|$)', lambda m: m.group(1).upper(), name)
    return re.sub(r'\d+(\w|$)', lambda m: m.group(0).upper(), name)


def dashes_camel_case(name: str) -> str:
    return re.sub(r'-+(\w)', lambda m: m.group(1).upper(), name)


def _identity(name: str) -> str:
    return name


class LocalsConvention(enum.Enum):
    AS_IS = 'asIs'
    CAMEL_CASE = 'camelCase'
    CAMEL_CASE_ONLY = 'camelCaseOnly'
    DASHES = 'dashes'
    DASHES_ONLY = 'dashesOnly'

    @property
    def transform(self) -> Callable[[str], str]:
        if self in (LocalsConvention.CAMEL_CASE, LocalsConvention.CAMEL_CASE_ONLY):
            return camelcase
        if self in (LocalsConvention.DASHES, LocalsConvention.DASHES_ONLY):
            return dashes_camel_case
        return _identity

    @property
    def keeps_original(self) -> bool:
        return self in (LocalsConvention.CAMEL_CASE, LocalsConvention.DASHES)

    def format_tokens(self, tokens: List[Token]) -> List[Token]:
        if self is LocalsConvention.AS_IS:
            return list(tokens)
        transform = self.transform
        ret: List[Token] = []
        for token in tokens:
            if self.keeps_original:
                ret.append(token)
            if isinstance(token, ReexportedToken):
                ret.append(
                    token._replace(
                        name=transform(token.name),
                        imported_name=transform(token.imported_name),
                    )
                )
            else:
                ret.append(token._replace(name=transform(token.name)))
        return ret


class DtsFormatOptions(NamedTuple):
    locals_convention: LocalsConvention = LocalsConvention.AS_IS


class LocalFile(NamedTuple):
    location: str


class PackageFile(NamedTuple):
    location: str


class RemoteResource(NamedTuple):
    location: str


class AlreadyBundled(NamedTuple):
    location: str


Resolution = Union[LocalFile, PackageFile, RemoteResource, AlreadyBundled]


class LoadResult(NamedTuple):
    css: str
    tokens: List[Token]
    dependencies: FrozenSet[str]


def is_remote(location: str) -> bool:
    return location.startswith('http://') or location.startswith('https://')
