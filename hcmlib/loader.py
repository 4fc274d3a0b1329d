import asyncio
import os.path
from contextvars import ContextVar
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Set, Tuple

import requests.models

from .httpcache import ContentCache
from .httpcache import HTTPClient as BaseHTTPClient
from .locator import (
    ClassName,
    Composes,
    Export,
    Locator,
    SassModuleRule,
    StaticImport,
    ValueDefinition,
    ValueImport,
    find_exports,
)
from .models import (
    AlreadyBundled,
    LoadResult,
    OwnToken,
    ReexportedToken,
    Resolution,
    Token,
    is_remote,
)
from .resolver import (
    SCSS_EXTENSIONS,
    FileSystem,
    LocalFileSystem,
    PathResolutionError,
    Resolver,
    file_url_to_path,
)
from .transformer import ScssTransformer, Transformer

# The stylesheets currently being loaded, outermost first.  Each task started
# by `asyncio.gather` gets its own copy.
_import_chain: ContextVar[Tuple[str, ...]] = ContextVar('hcmlib_import_chain', default=())


class Fetcher(Protocol):
    def fetch(self, url: str) -> str:
        ...


class HTTPClient(BaseHTTPClient):
    _loader: 'Loader'

    def __init__(self, loader: 'Loader'):
        self._loader = loader
        super().__init__()

    def hook_before_send(self, request: requests.models.PreparedRequest) -> None:
        assert request.url
        self._loader.handle_request_starting(request.url)


def _dedupe(tokens: List[Token]) -> List[Token]:
    seen: Set[Token] = set()
    ret: List[Token] = []
    for token in tokens:
        if token not in seen:
            seen.add(token)
            ret.append(token)
    return ret


class Loader:
    """Compiles a stylesheet and everything it imports, and collects the names
    it exports along with where each of them was defined.

    """

    file_system: FileSystem
    resolver: Resolver
    transformer: Transformer
    fetcher: Fetcher
    content_cache: ContentCache

    def __init__(
        self,
        transformer: Optional[Transformer] = None,
        resolver: Optional[Resolver] = None,
        file_system: Optional[FileSystem] = None,
        fetcher: Optional[Fetcher] = None,
        content_cache: Optional[ContentCache] = None,
        cwd: Optional[str] = None,
    ) -> None:
        self.file_system = file_system or LocalFileSystem()
        self.resolver = resolver or Resolver(self.file_system, cwd)
        self.transformer = transformer or ScssTransformer()
        self.fetcher = fetcher or HTTPClient(self)
        self.content_cache = content_cache or ContentCache()

    def _entry_location(self, specifier: str) -> str:
        if is_remote(specifier):
            return specifier
        if specifier.startswith('file://'):
            specifier = file_url_to_path(specifier)
        return os.path.normpath(os.path.join(self.resolver.cwd, specifier))

    async def load(self, specifier: str) -> LoadResult:
        """Load the stylesheet at `specifier` (a path, file:// URL or http(s)
        URL).

        Raises PathResolutionError, NetworkError or TransformError; any of
        them aborts the whole load.

        """
        location = self._entry_location(specifier)
        chain = _import_chain.get()
        # A remote stylesheet pulled in by another remote stylesheet is
        # compiled without its own imports.
        follow_imports = not (is_remote(location) and chain and is_remote(chain[-1]))
        self.handle_load_starting(location)
        reset_token = _import_chain.set(chain + (location,))
        try:
            return await self._load(location, follow_imports)
        finally:
            _import_chain.reset(reset_token)

    async def _read(self, location: str) -> str:
        chain = _import_chain.get()
        importer = chain[-2] if len(chain) > 1 else None
        if is_remote(location):
            loop = asyncio.get_running_loop()

            async def fetch() -> str:
                return await loop.run_in_executor(None, self.fetcher.fetch, location)

            try:
                return await self.content_cache.get(location, fetch)
            except PathResolutionError as err:
                raise PathResolutionError(location, importer, err.reason) from err
        if not self.file_system.is_file(location):
            raise PathResolutionError(location, importer, "no such file")
        return self.file_system.read_text(location)

    async def _load(self, location: str, follow_imports: bool) -> LoadResult:
        source = await self._read(location)
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(
            None, self.transformer.transform, source, location, self.resolver
        )
        css = result.css if result else source
        locator = Locator(
            location, result.source_map if result else None, compiled=result is not None
        )
        bundled = set(result.bundled) if result else set()
        deferred = list(result.deferred) if result else []
        exports = find_exports(css)

        dependencies: Set[str] = set(bundled)
        resolutions: Dict[str, Resolution] = {}
        specifiers: List[Tuple[str, Sequence[str]]] = [(specifier, ()) for specifier in deferred]
        for export in exports:
            if isinstance(export, SassModuleRule):
                # Resolved the way Sass resolves module URLs: partials, implicit
                # extensions and index files.
                specifiers.append((export.specifier, SCSS_EXTENSIONS))
            elif isinstance(export, (StaticImport, ValueImport)) or (
                isinstance(export, Composes) and export.specifier
            ):
                assert export.specifier
                specifiers.append((export.specifier, ()))
        for specifier, extensions in specifiers:
            if not follow_imports:
                self.handle_import_skipped(
                    specifier, location, "imports of nested remote stylesheets are not followed"
                )
                continue
            if specifier in resolutions:
                continue
            resolution = self.resolver.resolve(specifier, location, extensions)
            if resolution.location in bundled:
                resolution = AlreadyBundled(resolution.location)
            resolutions[specifier] = resolution

        to_load: List[str] = []
        chain = _import_chain.get()
        for specifier, resolution in resolutions.items():
            dependencies.add(resolution.location)
            if isinstance(resolution, AlreadyBundled) or resolution.location in to_load:
                continue
            if resolution.location in chain:
                self.handle_import_skipped(specifier, location, "circular import")
                continue
            to_load.append(resolution.location)

        loaded: Dict[str, LoadResult] = dict(
            zip(to_load, await asyncio.gather(*[self.load(loc) for loc in to_load]))
        )
        for dep in loaded.values():
            dependencies.update(dep.dependencies)

        def tokens_of(specifier: Optional[str]) -> List[Token]:
            resolution = resolutions.get(specifier) if specifier else None
            if resolution is None or resolution.location not in loaded:
                return []
            return loaded[resolution.location].tokens

        tokens: List[Token] = []
        for specifier in deferred:
            tokens.extend(tokens_of(specifier))
        for export in exports:
            tokens.extend(self._tokens_for(export, locator, tokens_of))
        return LoadResult(css=css, tokens=_dedupe(tokens), dependencies=frozenset(dependencies))

    def _tokens_for(
        self,
        export: Export,
        locator: Locator,
        tokens_of: Callable[[Optional[str]], List[Token]],
    ) -> List[Token]:
        if isinstance(export, ClassName) or isinstance(export, ValueDefinition):
            return [
                OwnToken(
                    export.name,
                    locator.original_location(export.name, export.line, export.column),
                )
            ]
        elif isinstance(export, (StaticImport, SassModuleRule)):
            return list(tokens_of(export.specifier))
        elif isinstance(export, Composes):
            # Classes composed from the same file are exported already.
            return [
                OwnToken(token.name, token.original_location)
                for token in tokens_of(export.specifier)
                if token.name in export.names
            ]
        elif isinstance(export, ValueImport):
            ret: List[Token] = []
            foreign = tokens_of(export.specifier)
            for imported_name, local_name in export.names:
                matches = [t for t in foreign if t.name == imported_name]
                if not matches:
                    location = locator.original_location(local_name, export.line, export.column)
                    ret.append(ReexportedToken(local_name, imported_name, location))
                for match in matches:
                    ret.append(ReexportedToken(local_name, imported_name, match.original_location))
            return ret
        else:
            assert False

    def handle_load_starting(self, location: str) -> None:
        """handle_load_starting is a hook; called whenever `load()` starts on a
        stylesheet, including the stylesheets it imports.

        """
        pass

    def handle_request_starting(self, url: str) -> None:
        """handle_request_starting is a hook; called before we send an HTTP
        request for a remote stylesheet.

        """
        pass

    def handle_import_skipped(self, specifier: str, importer: str, reason: str) -> None:
        """handle_import_skipped is a hook; called for each import that is not
        loaded: an import that would close a cycle, or an import inside a
        remote stylesheet that was itself imported by a remote stylesheet.

        """
        pass
