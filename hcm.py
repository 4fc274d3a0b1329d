#!/usr/bin/env python3
import asyncio
import os
import sys
from typing import Optional, Sequence

from hcmlib import (
    DtsFormatOptions,
    Loader,
    LocalsConvention,
    MissingLocationWarning,
    NetworkError,
    PathResolutionError,
    TransformError,
    emit_generated_files,
    make_is_external_file,
)

OUT_DIR = os.getenv('HCM_OUT_DIR') or None
ARBITRARY_EXTENSIONS = os.getenv('HCM_ARBITRARY_EXTENSIONS', '0') == '1'
LOCALS_CONVENTION = LocalsConvention(os.getenv('HCM_LOCALS_CONVENTION', 'asIs'))
DECLARATION_MAP = os.getenv('HCM_DECLARATION_MAP', '1') == '1'


class Runner(Loader):
    stats_requests: int = 0
    stats_loads: int = 0
    stats_errors: int = 0
    stats_skipped: int = 0
    stats_written: int = 0

    def handle_request_starting(self, url: str) -> None:
        print(f"GET {url}")
        self.stats_requests += 1

    def handle_load_starting(self, location: str) -> None:
        self.stats_loads += 1

    def handle_import_skipped(self, specifier: str, importer: str, reason: str) -> None:
        self.stats_skipped += 1
        print(f"skip: {importer}: {specifier!r} ({reason})")

    def handle_missing_location(self, warning: MissingLocationWarning) -> None:
        print(f"warning: {warning}")

    def handle_error(self, file_path: str, err: Exception) -> None:
        self.stats_errors += 1
        print(f"error: {file_path}: {err}")

    def generate(
        self,
        file_path: str,
        cwd: str,
        out_dir: Optional[str] = OUT_DIR,
        arbitrary_extensions: bool = ARBITRARY_EXTENSIONS,
    ) -> None:
        try:
            result = asyncio.run(self.load(file_path))
        except (PathResolutionError, NetworkError, TransformError) as err:
            self.handle_error(file_path, err)
            return
        written = emit_generated_files(
            file_path=file_path,
            tokens=result.tokens,
            is_external_file=make_is_external_file(cwd),
            dts_format_options=DtsFormatOptions(locals_convention=LOCALS_CONVENTION),
            emit_declaration_map=DECLARATION_MAP,
            arbitrary_extensions=arbitrary_extensions,
            out_dir=out_dir,
            cwd=cwd,
            handle_missing_location=self.handle_missing_location,
        )
        for path in written:
            print(f"wrote {path}")
        self.stats_written += len(written)


def main(paths: Sequence[str]) -> int:
    cwd = os.getcwd()
    runner = Runner(cwd=cwd)
    for path in paths:
        runner.generate(os.path.abspath(path), cwd)
    print("Summary:")
    print(
        f"  Actions: Sent {runner.stats_requests} HTTP requests and loaded {runner.stats_loads} stylesheets in order to declare {len(paths)} files"
    )
    print(
        f"  Results: Wrote {runner.stats_written} files, skipped {runner.stats_skipped} imports, and encountered {runner.stats_errors} errors"
    )
    return 1 if runner.stats_errors > 0 else 0


if __name__ == "__main__":
    try:
        if len(sys.argv) < 2:
            print(f"Usage: {sys.argv[0]} STYLESHEET...", file=sys.stderr)
            sys.exit(2)
        sys.exit(main(sys.argv[1:]))
    except KeyboardInterrupt as err:
        print(err, file=sys.stderr)
        sys.exit(130)
