from .dts import MissingLocationWarning, generate_dts_content_with_source_map
from .emitter import emit_generated_files, get_dts_file_path, make_is_external_file
from .httpcache import ContentCache, NetworkError, RetryAfterException
from .loader import Loader
from .models import (
    DtsFormatOptions,
    LoadResult,
    LocalsConvention,
    OriginalLocation,
    OwnToken,
    Position,
    ReexportedToken,
    Token,
)
from .resolver import PathResolutionError, Resolver
from .transformer import ScssTransformer, TransformError

__all__ = [
    # dts.py
    'MissingLocationWarning',
    'generate_dts_content_with_source_map',
    # emitter.py
    'emit_generated_files',
    'get_dts_file_path',
    'make_is_external_file',
    # httpcache.py
    'ContentCache',
    'NetworkError',
    'RetryAfterException',
    # loader.py
    'Loader',
    # models.py
    'DtsFormatOptions',
    'LoadResult',
    'LocalsConvention',
    'OriginalLocation',
    'OwnToken',
    'Position',
    'ReexportedToken',
    'Token',
    # resolver.py
    'PathResolutionError',
    'Resolver',
    # transformer.py
    'ScssTransformer',
    'TransformError',
]
