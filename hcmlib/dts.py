import os.path
from typing import Callable, List, NamedTuple, Optional, Tuple

from .models import (
    DtsFormatOptions,
    LocalsConvention,
    OriginalLocation,
    OwnToken,
    Position,
    ReexportedToken,
    Token,
    is_remote,
)
from .sourcemap import Mapping, SourceMapGenerator

EOL = '\n'
DEFAULT_EXPORT_NAME = 'styles'


class MissingLocationWarning(UserWarning):
    """Handed to the caller's hook when a token has no original location and is
    attributed to the first position of the file being declared instead.  Never
    raised.

    """

    def __init__(self, file_path: str, token: Token) -> None:
        super().__init__(
            f"{file_path}: no original location for {token.name!r}; falling back to 1:1"
        )
        self.file_path = file_path
        self.token = token


def get_relative_path(from_file_path: str, to_file_path: str) -> str:
    """Path of `to_file_path` as seen from the directory containing
    `from_file_path`, in the "./foo.css" / "../foo.css" form an import
    specifier needs.  URLs are returned unchanged.

    """
    if is_remote(to_file_path):
        return to_file_path
    ret = os.path.relpath(to_file_path, os.path.dirname(from_file_path))
    ret = ret.replace(os.sep, '/')
    if ret == '..' or ret.startswith('../'):
        return ret
    return './' + ret


class _Writer:
    """Accumulates generated text while tracking the 0-based line/column at
    which the next chunk will land.

    """

    def __init__(self) -> None:
        self.chunks: List[str] = []
        self.line = 0
        self.column = 0

    def write(self, text: str) -> Tuple[int, int]:
        at = (self.line, self.column)
        self.chunks.append(text)
        newlines = text.count(EOL)
        if newlines:
            self.line += newlines
            self.column = len(text) - text.rfind(EOL) - 1
        else:
            self.column += len(text)
        return at

    def getvalue(self) -> str:
        return ''.join(self.chunks)


class _Fragment(NamedTuple):
    before: str
    name: str
    after: str


def _select_fragment(
    file_path: str,
    token: Token,
    location: OriginalLocation,
    is_external_file: Callable[[str], bool],
) -> _Fragment:
    quoted = f'"{token.name}"'
    assert location.source is not None
    if location.source == file_path or is_external_file(location.source):
        return _Fragment('& Readonly<{ ', quoted, ': string }>')
    # Tokens of other local files are typed by the other module's declaration.
    import_path = get_relative_path(file_path, location.source)
    if isinstance(token, ReexportedToken):
        return _Fragment(
            '& Readonly<{ ',
            quoted,
            f': (typeof import("{import_path}"))["default"]["{token.imported_name}"] }}>',
        )
    elif isinstance(token, OwnToken):
        return _Fragment(
            f'& Readonly<Pick<(typeof import("{import_path}"))["default"], ',
            quoted,
            '>>',
        )
    else:
        assert False


def generate_dts_content_with_source_map(
    file_path: str,
    dts_file_path: str,
    source_map_file_path: str,
    tokens: List[Token],
    dts_format_options: Optional[DtsFormatOptions],
    is_external_file: Callable[[str], bool],
    handle_missing_location: Optional[Callable[[MissingLocationWarning], None]] = None,
) -> Tuple[str, SourceMapGenerator]:
    """Generate the declaration of a stylesheet's default export together
    with a source map from each declared property to where it was defined.

    A source map can associate only one original position with a generated
    position, so a name defined in several places produces several
    intersected `Readonly<...>` fragments, each mapped separately.

    """
    convention = (
        dts_format_options.locals_convention if dts_format_options else LocalsConvention.AS_IS
    )
    source_map = SourceMapGenerator(file=os.path.basename(dts_file_path), source_root='')
    formatted = convention.format_tokens(tokens)
    if not formatted:
        return '', source_map

    out = _Writer()
    out.write(f'declare const {DEFAULT_EXPORT_NAME}:{EOL}')
    for token in formatted:
        location = token.original_location
        if location.source is None:
            if handle_missing_location:
                handle_missing_location(MissingLocationWarning(file_path, token))
            location = OriginalLocation(
                source=file_path, start=Position(1, 1), end=Position(1, 1)
            )
        assert location.source is not None

        fragment = _select_fragment(file_path, token, location, is_external_file)
        out.write('  ' + fragment.before)
        gen_line, gen_column = out.write(fragment.name)
        out.write(fragment.after + EOL)
        source_map.add_mapping(
            Mapping(
                generated_line=gen_line,
                generated_column=gen_column,
                source=get_relative_path(source_map_file_path, location.source),
                original_line=location.start.line,
                # source maps use 0-based columns
                original_column=location.start.column - 1,
                name=token.name,
            )
        )
    out.write(f';{EOL}')
    out.write(f'export default {DEFAULT_EXPORT_NAME};{EOL}')
    return out.getvalue(), source_map
