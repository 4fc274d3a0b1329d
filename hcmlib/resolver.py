import json
import os.path
from typing import Iterable, List, Optional, Protocol, Sequence
from urllib.parse import unquote, urljoin, urlparse

from .models import LocalFile, PackageFile, RemoteResource, Resolution, is_remote

SCSS_EXTENSIONS = ('.scss', '.sass', '.css')


class PathResolutionError(Exception):
    def __init__(self, specifier: str, importer: Optional[str], reason: Optional[str] = None) -> None:
        msg = f"could not resolve {specifier!r}"
        if importer:
            msg += f" imported from {importer}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)
        self.specifier = specifier
        self.importer = importer
        self.reason = reason


class FileSystem(Protocol):
    def is_file(self, path: str) -> bool:
        ...

    def read_text(self, path: str) -> str:
        ...


class LocalFileSystem:
    def is_file(self, path: str) -> bool:
        return os.path.isfile(path)

    def read_text(self, path: str) -> str:
        with open(path, mode='r', encoding='utf-8') as fp:
            return fp.read()


def file_url_to_path(url: str) -> str:
    return unquote(urlparse(url).path)


def _candidates(path: str, extensions: Sequence[str]) -> Iterable[str]:
    """Files that a Sass-style import of `path` may refer to: the path itself,
    its `_partial`, the path with each implicit extension, and index files.

    """
    dirname, basename = os.path.split(path)
    yield path
    yield os.path.join(dirname, '_' + basename)
    if os.path.splitext(basename)[1] in extensions:
        return
    for ext in extensions:
        yield path + ext
        yield os.path.join(dirname, '_' + basename + ext)
    for ext in extensions:
        yield os.path.join(path, 'index' + ext)
        yield os.path.join(path, '_index' + ext)


def _split_package_specifier(specifier: str) -> Optional[List[str]]:
    parts = specifier.split('/')
    if specifier.startswith('@'):
        if len(parts) < 2 or not parts[1]:
            return None
        return ['/'.join(parts[:2])] + parts[2:]
    if not parts[0] or parts[0] in ('.', '..'):
        return None
    return parts


class Resolver:
    """Resolves the specifiers of `@import`, `composes ... from` and
    `@value ... from` to concrete locations.

    Strategies are tried in order:

      1. a path relative to the importing file (or an absolute path);
      2. a package, looked up in the `node_modules` directories of the
         importing file's ancestors;
      3. an absolute http:// or https:// URL, or a relative specifier inside
         a remote stylesheet.

    """

    file_system: FileSystem
    cwd: str

    def __init__(self, file_system: Optional[FileSystem] = None, cwd: Optional[str] = None) -> None:
        self.file_system = file_system or LocalFileSystem()
        self.cwd = cwd or os.getcwd()

    def resolve(
        self,
        specifier: str,
        importer: Optional[str],
        extensions: Sequence[str] = (),
    ) -> Resolution:
        if specifier.startswith('file://'):
            specifier = file_url_to_path(specifier)

        if importer and is_remote(importer) and not urlparse(specifier).scheme:
            return RemoteResource(urljoin(importer, specifier))

        if not urlparse(specifier).scheme:
            local = self._resolve_local(specifier, importer, extensions)
            if local:
                return LocalFile(local)
            package = self._resolve_package(specifier, importer, extensions)
            if package:
                return PackageFile(package)
        elif is_remote(specifier):
            return RemoteResource(specifier)

        raise PathResolutionError(specifier, importer)

    def _first_file(self, paths: Iterable[str]) -> Optional[str]:
        for path in paths:
            if self.file_system.is_file(path):
                return os.path.normpath(path)
        return None

    def _resolve_local(
        self, specifier: str, importer: Optional[str], extensions: Sequence[str]
    ) -> Optional[str]:
        basedir = os.path.dirname(importer) if importer else self.cwd
        path = os.path.join(basedir, specifier)
        if not extensions:
            return self._first_file([path])
        return self._first_file(_candidates(path, extensions))

    def _resolve_package(
        self, specifier: str, importer: Optional[str], extensions: Sequence[str]
    ) -> Optional[str]:
        parts = _split_package_specifier(specifier.lstrip('~'))
        if not parts:
            return None
        name, subpath = parts[0], parts[1:]
        directory = os.path.dirname(importer) if importer else self.cwd
        while True:
            package_dir = os.path.join(directory, 'node_modules', name)
            if subpath:
                found = self._first_file(
                    _candidates(os.path.join(package_dir, *subpath), extensions or SCSS_EXTENSIONS)
                )
            else:
                found = self._package_entry(package_dir, extensions or SCSS_EXTENSIONS)
            if found:
                return found
            parent = os.path.dirname(directory)
            if parent == directory:
                return None
            directory = parent

    def _package_entry(self, package_dir: str, extensions: Sequence[str]) -> Optional[str]:
        manifest_path = os.path.join(package_dir, 'package.json')
        if self.file_system.is_file(manifest_path):
            try:
                manifest = json.loads(self.file_system.read_text(manifest_path))
            except ValueError:
                manifest = {}
            for field in ('sass', 'style', 'main'):
                entry = manifest.get(field)
                if isinstance(entry, str) and os.path.splitext(entry)[1] in extensions:
                    found = self._first_file([os.path.join(package_dir, entry)])
                    if found:
                        return found
        return self._first_file(os.path.join(package_dir, 'index' + ext) for ext in extensions)
