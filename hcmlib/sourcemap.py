"""Version 3 source maps: just enough to write the declaration maps and to read
the maps produced by the stylesheet compiler.

Generated lines/columns are 0-based here (as in the source map format);
original lines are 1-based and original columns 0-based, following the
convention of the JavaScript `source-map` library.

"""
import bisect
import json
from typing import Any, Dict, List, NamedTuple, Optional

BASE64_CHARS = 'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/'
BASE64_VALUES = {c: i for i, c in enumerate(BASE64_CHARS)}

VLQ_SHIFT = 5
VLQ_BASE = 1 << VLQ_SHIFT
VLQ_MASK = VLQ_BASE - 1
VLQ_CONTINUATION = VLQ_BASE


def encode_vlq(value: int) -> str:
    vlq = ((-value) << 1) + 1 if value < 0 else value << 1
    ret = ''
    while True:
        digit = vlq & VLQ_MASK
        vlq >>= VLQ_SHIFT
        if vlq:
            digit |= VLQ_CONTINUATION
        ret += BASE64_CHARS[digit]
        if not vlq:
            return ret


def decode_vlq_segment(segment: str) -> List[int]:
    values: List[int] = []
    shift = 0
    value = 0
    for char in segment:
        digit = BASE64_VALUES[char]
        value += (digit & VLQ_MASK) << shift
        if digit & VLQ_CONTINUATION:
            shift += VLQ_SHIFT
            continue
        values.append(-(value >> 1) if value & 1 else value >> 1)
        shift = 0
        value = 0
    return values


class Mapping(NamedTuple):
    generated_line: int
    generated_column: int
    source: Optional[str] = None
    original_line: Optional[int] = None
    original_column: Optional[int] = None
    name: Optional[str] = None


class SourceMapGenerator:
    file: str
    source_root: str
    _mappings: List[Mapping]

    def __init__(self, file: str, source_root: str = '') -> None:
        self.file = file
        self.source_root = source_root
        self._mappings = []

    def add_mapping(self, mapping: Mapping) -> None:
        self._mappings.append(mapping)

    def _serialize_mappings(self, sources: List[str], names: List[str]) -> str:
        lines: List[str] = []
        prev_gen_column = prev_source = prev_orig_line = prev_orig_column = prev_name = 0
        for mapping in sorted(self._mappings, key=lambda m: m[:2]):
            while len(lines) <= mapping.generated_line:
                lines.append('')
                prev_gen_column = 0
            segment = encode_vlq(mapping.generated_column - prev_gen_column)
            prev_gen_column = mapping.generated_column
            if mapping.source is not None:
                assert mapping.original_line is not None
                assert mapping.original_column is not None
                source_idx = sources.index(mapping.source)
                segment += encode_vlq(source_idx - prev_source)
                segment += encode_vlq(mapping.original_line - 1 - prev_orig_line)
                segment += encode_vlq(mapping.original_column - prev_orig_column)
                prev_source = source_idx
                prev_orig_line = mapping.original_line - 1
                prev_orig_column = mapping.original_column
                if mapping.name is not None:
                    name_idx = names.index(mapping.name)
                    segment += encode_vlq(name_idx - prev_name)
                    prev_name = name_idx
            lines[-1] += ('' if not lines[-1] else ',') + segment
        return ';'.join(lines)

    def to_json(self) -> Dict[str, Any]:
        sources: List[str] = []
        names: List[str] = []
        for mapping in self._mappings:
            if mapping.source is not None and mapping.source not in sources:
                sources.append(mapping.source)
            if mapping.name is not None and mapping.name not in names:
                names.append(mapping.name)
        return {
            'version': 3,
            'sources': sources,
            'names': names,
            'mappings': self._serialize_mappings(sources, names),
            'file': self.file,
            'sourceRoot': self.source_root,
        }

    def __str__(self) -> str:
        return json.dumps(self.to_json())


class SourceMapConsumer:
    """Looks up original positions in a compiler-produced source map."""

    sources: List[str]
    names: List[str]
    _lines: Dict[int, List[Mapping]]

    def __init__(self, raw: Any) -> None:
        data = json.loads(raw) if isinstance(raw, str) else raw
        root = data.get('sourceRoot') or ''
        if root and not root.endswith('/'):
            root += '/'
        self.sources = [root + source for source in data.get('sources', [])]
        self.names = list(data.get('names', []))
        self._lines = {}
        self._parse(data.get('mappings', ''))

    def _parse(self, mappings: str) -> None:
        source = orig_line = orig_column = name = 0
        for gen_line, line in enumerate(mappings.split(';')):
            gen_column = 0
            parsed: List[Mapping] = []
            for segment in line.split(','):
                if not segment:
                    continue
                fields = decode_vlq_segment(segment)
                gen_column += fields[0]
                if len(fields) < 4:
                    parsed.append(Mapping(gen_line, gen_column))
                    continue
                source += fields[1]
                orig_line += fields[2]
                orig_column += fields[3]
                mapping_name: Optional[str] = None
                if len(fields) >= 5:
                    name += fields[4]
                    mapping_name = self.names[name]
                parsed.append(
                    Mapping(
                        gen_line,
                        gen_column,
                        self.sources[source],
                        orig_line + 1,
                        orig_column,
                        mapping_name,
                    )
                )
            if parsed:
                self._lines[gen_line] = sorted(parsed, key=lambda m: m.generated_column)

    def original_position_for(self, line: int, column: int) -> Optional[Mapping]:
        """Find the closest mapping at or before the given 0-based generated
        position on the same line.

        """
        segments = self._lines.get(line)
        if not segments:
            return None
        columns: List[int] = [m.generated_column for m in segments]
        idx = bisect.bisect_right(columns, column) - 1
        if idx < 0:
            return None
        found = segments[idx]
        if found.source is None:
            return None
        return found

    def all_mappings(self) -> List[Mapping]:
        ret: List[Mapping] = []
        for line in sorted(self._lines):
            ret.extend(self._lines[line])
        return ret
