import json
import os.path
from typing import Any, Dict, List, NamedTuple, Optional, Protocol, Tuple
from urllib.parse import urlparse

import sass

from .models import LocalFile, PackageFile, RemoteResource, is_remote
from .resolver import SCSS_EXTENSIONS, Resolver


class TransformError(Exception):
    def __init__(self, location: str, message: str) -> None:
        super().__init__(f"{location}: {message}")
        self.location = location
        self.message = message


class TransformResult(NamedTuple):
    css: str
    # Source map of `css`, with absolute `sources`; None if the compiler did
    # not produce one.
    source_map: Optional[Dict[str, Any]]
    # Files the compiler inlined into `css`.
    bundled: List[str]
    # Remote imports that were replaced by empty stylesheets during
    # compilation; the loader fetches them afterwards.
    deferred: List[str]


class Transformer(Protocol):
    def transform(self, source: str, from_: str, resolver: Resolver) -> Optional[TransformResult]:
        """Compile `source` (the content of `from_`) to CSS.  Returns None if
        `from_` is plain CSS that needs no compilation.

        An implementation may read a local `from_` itself instead of using
        `source`; ScssTransformer does, see there.

        """
        ...


def source_extension(location: str) -> str:
    if is_remote(location):
        location = urlparse(location).path
    return os.path.splitext(location)[1].lower()


class ScssTransformer:
    """Compiles .scss and .sass stylesheets with libsass.

    Every import that libsass would inline goes through our importer, which
    resolves it with the Resolver and hands libsass the content; that way the
    inlined ("pre-bundled") files are known.  Plain CSS imports and URLs are
    declined and stay in the output as static `@import` rules, which the
    loader resolves on its own.

    A local entry is compiled with `sass.compile(filename=...)`, so libsass
    reads it from disk and `source` is ignored; libsass only produces a source
    map for that mode.  Remote entries are compiled from `source`.  Files
    reached through the importer are read with `resolver.file_system`.

    `@use` and `@forward` are not supported by libsass and are copied to the
    output unchanged; the loader loads them like static imports.

    """

    output_style: str

    def __init__(self, output_style: str = 'expanded') -> None:
        self.output_style = output_style

    def transform(self, source: str, from_: str, resolver: Resolver) -> Optional[TransformResult]:
        if source_extension(from_) not in ('.scss', '.sass'):
            return None

        bundled: List[str] = []
        deferred: List[str] = []
        errors: List[Exception] = []

        def importer(path: str, prev: str) -> Optional[List[Tuple[str, str]]]:
            if is_remote(path) or source_extension(path) == '.css':
                return None
            base = from_ if prev == 'stdin' or not prev else prev
            try:
                resolution = resolver.resolve(path, base, SCSS_EXTENSIONS)
                if isinstance(resolution, RemoteResource):
                    # libsass cannot wait for the network from inside a
                    # compilation.
                    deferred.append(resolution.location)
                    return [(resolution.location, '')]
                assert isinstance(resolution, (LocalFile, PackageFile))
                content = resolver.file_system.read_text(resolution.location)
            except Exception as err:
                errors.append(err)
                raise
            if resolution.location not in bundled:
                bundled.append(resolution.location)
            return [(resolution.location, content)]

        try:
            if is_remote(from_):
                css = sass.compile(
                    string=source,
                    output_style=self.output_style,
                    indented=source_extension(from_) == '.sass',
                    importers=[(0, importer)],
                )
                raw_map: Optional[str] = None
            else:
                css, raw_map = sass.compile(
                    filename=from_,
                    source_map_filename=from_ + '.map',
                    output_style=self.output_style,
                    omit_source_map_url=True,
                    importers=[(0, importer)],
                )
        except sass.CompileError as err:
            if errors:
                raise errors[0]
            raise TransformError(from_, f"{err}")

        source_map = None
        if raw_map:
            source_map = json.loads(raw_map)
            basedir = os.path.dirname(from_)
            source_map['sources'] = [
                src if is_remote(src) else os.path.normpath(os.path.join(basedir, src))
                for src in source_map.get('sources', [])
            ]
            source_map['sourceRoot'] = ''
        return TransformResult(css=css, source_map=source_map, bundled=bundled, deferred=deferred)

