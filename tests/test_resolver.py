"""Tests for Resolver."""

import json

import pytest

from hcmlib.models import LocalFile, PackageFile, RemoteResource
from hcmlib.resolver import SCSS_EXTENSIONS, PathResolutionError, Resolver


@pytest.fixture
def resolver(make_fs):
    fs = make_fs(
        {
            '/project/src/a.css': '',
            '/project/src/b.css': '',
            '/project/src/_partial.scss': '',
            '/project/src/dir/index.scss': '',
            '/project/node_modules/pkg-css/index.css': '',
            '/project/node_modules/pkg-style/package.json': json.dumps(
                {'main': 'index.js', 'style': 'dist/style.css'}
            ),
            '/project/node_modules/pkg-style/dist/style.css': '',
            '/project/node_modules/pkg-style/other.css': '',
            '/project/node_modules/@scope/pkg/index.scss': '',
            '/node_modules/top/index.css': '',
        }
    )
    return Resolver(fs, cwd='/project')


class TestLocal:
    def test_relative(self, resolver):
        assert resolver.resolve('./b.css', '/project/src/a.css') == LocalFile('/project/src/b.css')

    def test_bare_relative(self, resolver):
        assert resolver.resolve('b.css', '/project/src/a.css') == LocalFile('/project/src/b.css')

    def test_absolute(self, resolver):
        assert resolver.resolve('/project/src/b.css', '/elsewhere/x.css') == LocalFile(
            '/project/src/b.css'
        )

    def test_file_url(self, resolver):
        assert resolver.resolve('file:///project/src/b.css', None) == LocalFile('/project/src/b.css')

    def test_relative_to_cwd_without_importer(self, resolver):
        assert resolver.resolve('src/a.css', None) == LocalFile('/project/src/a.css')

    def test_scss_partial(self, resolver):
        assert resolver.resolve('./partial', '/project/src/a.scss', SCSS_EXTENSIONS) == LocalFile(
            '/project/src/_partial.scss'
        )

    def test_scss_index(self, resolver):
        assert resolver.resolve('./dir', '/project/src/a.scss', SCSS_EXTENSIONS) == LocalFile(
            '/project/src/dir/index.scss'
        )

    def test_no_implicit_extension_for_css(self, resolver):
        with pytest.raises(PathResolutionError):
            resolver.resolve('./b', '/project/src/a.css')


class TestPackage:
    def test_index(self, resolver):
        assert resolver.resolve('pkg-css', '/project/src/a.css') == PackageFile(
            '/project/node_modules/pkg-css/index.css'
        )

    def test_style_field(self, resolver):
        assert resolver.resolve('pkg-style', '/project/src/a.css') == PackageFile(
            '/project/node_modules/pkg-style/dist/style.css'
        )

    def test_subpath(self, resolver):
        assert resolver.resolve('pkg-style/other.css', '/project/src/a.css') == PackageFile(
            '/project/node_modules/pkg-style/other.css'
        )

    def test_scoped(self, resolver):
        assert resolver.resolve('@scope/pkg', '/project/src/a.css') == PackageFile(
            '/project/node_modules/@scope/pkg/index.scss'
        )

    def test_tilde_prefix(self, resolver):
        assert resolver.resolve('~pkg-css', '/project/src/a.css') == PackageFile(
            '/project/node_modules/pkg-css/index.css'
        )

    def test_searches_ancestors(self, resolver):
        assert resolver.resolve('top', '/project/src/a.css') == PackageFile(
            '/node_modules/top/index.css'
        )


class TestRemote:
    def test_absolute_url(self, resolver):
        assert resolver.resolve('https://example.com/a.css', '/project/src/a.css') == RemoteResource(
            'https://example.com/a.css'
        )

    def test_relative_inside_remote(self, resolver):
        assert resolver.resolve('./b.css', 'https://example.com/path/a.css') == RemoteResource(
            'https://example.com/path/b.css'
        )


class TestFailure:
    def test_names_specifier_and_importer(self, resolver):
        with pytest.raises(PathResolutionError) as excinfo:
            resolver.resolve('./missing.css', '/project/src/a.css')
        assert excinfo.value.specifier == './missing.css'
        assert excinfo.value.importer == '/project/src/a.css'
        assert './missing.css' in str(excinfo.value)

    def test_unknown_scheme(self, resolver):
        with pytest.raises(PathResolutionError):
            resolver.resolve('ftp://example.com/a.css', '/project/src/a.css')
