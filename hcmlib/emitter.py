import os
import os.path
from typing import Callable, List, Optional

from .dts import MissingLocationWarning, generate_dts_content_with_source_map
from .models import DtsFormatOptions, Token, is_remote


def get_dts_file_path(
    file_path: str,
    arbitrary_extensions: bool,
    out_dir: Optional[str],
    cwd: Optional[str] = None,
) -> str:
    """Returns the absolute path of the declaration file for `file_path`
    (`/dir/foo.css`).

    With `arbitrary_extensions` the result is `/dir/foo.d.css.ts` instead of
    `/dir/foo.css.d.ts`.  With `out_dir` the path of the source relative to
    `cwd` is re-rooted under `out_dir`.

    """
    if cwd is None:
        cwd = os.getcwd()
    output_file_path = file_path
    if out_dir:
        relative_path = os.path.relpath(file_path, cwd)
        output_file_path = os.path.normpath(os.path.join(cwd, out_dir, relative_path))

    if arbitrary_extensions:
        dirname, basename = os.path.split(output_file_path)
        stem, ext = os.path.splitext(basename)
        return os.path.join(dirname, f"{stem}.d{ext}.ts")
    return f"{output_file_path}.d.ts"


def get_source_map_file_path(dts_file_path: str) -> str:
    return f"{dts_file_path}.map"


def make_is_external_file(cwd: str) -> Callable[[str], bool]:
    """Files outside of `cwd`, files under node_modules, and remote resources
    are not part of the project; their declarations are not relied upon.

    """
    root = os.path.join(os.path.abspath(cwd), '')

    def is_external_file(file_path: str) -> bool:
        if is_remote(file_path):
            return True
        if not os.path.abspath(file_path).startswith(root):
            return True
        return 'node_modules' in file_path.split(os.sep)

    return is_external_file


def write_file_if_changed(file_path: str, content: str) -> bool:
    try:
        with open(file_path, mode='r', encoding='utf-8') as existing:
            if existing.read() == content:
                return False
    except FileNotFoundError:
        pass
    os.makedirs(os.path.dirname(file_path), exist_ok=True)
    with open(file_path, mode='w', encoding='utf-8') as out:
        out.write(content)
    return True


def emit_generated_files(
    file_path: str,
    tokens: List[Token],
    is_external_file: Callable[[str], bool],
    dts_format_options: Optional[DtsFormatOptions] = None,
    emit_declaration_map: bool = True,
    arbitrary_extensions: bool = False,
    out_dir: Optional[str] = None,
    cwd: Optional[str] = None,
    handle_missing_location: Optional[Callable[[MissingLocationWarning], None]] = None,
) -> List[str]:
    """Write the declaration file (and its source map) for `file_path`.
    Returns the paths that were actually (re)written.

    """
    dts_file_path = get_dts_file_path(file_path, arbitrary_extensions, out_dir, cwd)
    source_map_file_path = get_source_map_file_path(dts_file_path)
    dts_content, source_map = generate_dts_content_with_source_map(
        file_path,
        dts_file_path,
        source_map_file_path,
        tokens,
        dts_format_options,
        is_external_file,
        handle_missing_location,
    )
    written: List[str] = []
    if emit_declaration_map:
        if write_file_if_changed(source_map_file_path, str(source_map)):
            written.append(source_map_file_path)
        dts_content += f"//# sourceMappingURL={os.path.basename(source_map_file_path)}\n"
    if write_file_if_changed(dts_file_path, dts_content):
        written.append(dts_file_path)
    return written
