"""Find the names a compiled CSS Modules stylesheet exports, and the
specifiers it pulls other stylesheets in with.

"""
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple, Union

import tinycss2
import tinycss2.ast

from .models import OriginalLocation, Position
from .sourcemap import SourceMapConsumer

# At-rules whose block holds ordinary rules.
NESTING_AT_RULES = {'media', 'supports', 'layer', 'container', 'document', 'scope'}


class ClassName(NamedTuple):
    name: str
    line: int
    column: int


class StaticImport(NamedTuple):
    specifier: str
    line: int
    column: int


class SassModuleRule(NamedTuple):
    # `@use` or `@forward`, which libsass leaves in its output untouched.
    specifier: str
    line: int
    column: int


class Composes(NamedTuple):
    names: List[str]
    # None for classes of the same file; 'global' names are dropped earlier.
    specifier: Optional[str]
    line: int
    column: int


class ValueDefinition(NamedTuple):
    name: str
    line: int
    column: int


class ValueImport(NamedTuple):
    # (imported name, local name) pairs
    names: List[Tuple[str, str]]
    specifier: str
    line: int
    column: int


Export = Union[ClassName, StaticImport, SassModuleRule, Composes, ValueDefinition, ValueImport]


def _significant(tokens: Iterable[Any]) -> List[Any]:
    return [
        tok
        for tok in tokens
        if not isinstance(tok, (tinycss2.ast.WhitespaceToken, tinycss2.ast.Comment))
    ]


def _is_literal(tok: Any, value: str) -> bool:
    return isinstance(tok, tinycss2.ast.LiteralToken) and tok.value == value


def _is_ident(tok: Any, value: str) -> bool:
    return isinstance(tok, tinycss2.ast.IdentToken) and tok.lower_value == value


def _string_value(tok: Any) -> Optional[str]:
    if isinstance(tok, (tinycss2.ast.StringToken, tinycss2.ast.URLToken)):
        return tok.value
    if isinstance(tok, tinycss2.ast.FunctionBlock) and tok.lower_name == 'url':
        for arg in _significant(tok.arguments):
            if isinstance(arg, tinycss2.ast.StringToken):
                return arg.value
    return None


def _selector_classes(prelude: List[Any]) -> List[ClassName]:
    ret: List[ClassName] = []
    is_global = False
    prev: Any = None
    for idx, tok in enumerate(prelude):
        if _is_literal(tok, ','):
            is_global = False
        elif _is_literal(tok, ':') and idx + 1 < len(prelude):
            nxt = prelude[idx + 1]
            if _is_ident(nxt, 'global'):
                is_global = True
            elif _is_ident(nxt, 'local'):
                is_global = False
        elif isinstance(tok, tinycss2.ast.IdentToken) and _is_literal(prev, '.'):
            if not is_global:
                ret.append(ClassName(tok.value, prev.source_line, prev.source_column))
        elif isinstance(tok, tinycss2.ast.FunctionBlock) and tok.lower_name != 'global':
            ret.extend(_selector_classes(tok.arguments))
        prev = tok
    return ret


def _parse_composes(decl: tinycss2.ast.Declaration) -> Optional[Composes]:
    value = _significant(decl.value)
    names: List[str] = []
    specifier: Optional[str] = None
    for idx, tok in enumerate(value):
        if _is_ident(tok, 'from') and idx + 1 < len(value):
            if _is_ident(value[idx + 1], 'global'):
                return None
            specifier = _string_value(value[idx + 1])
            break
        if isinstance(tok, tinycss2.ast.IdentToken):
            names.append(tok.value)
    if not names:
        return None
    return Composes(names, specifier, decl.source_line, decl.source_column)


def _parse_value(rule: tinycss2.ast.AtRule) -> Optional[Union[ValueDefinition, ValueImport]]:
    prelude = _significant(rule.prelude)
    if len(prelude) >= 3 and _is_ident(prelude[-2], 'from'):
        specifier = _string_value(prelude[-1])
        if specifier is None:
            return None
        names: List[Tuple[str, str]] = []
        group: List[str] = []
        for tok in prelude[:-2] + [tinycss2.ast.LiteralToken(0, 0, ',')]:
            if _is_literal(tok, ','):
                if len(group) == 1:
                    names.append((group[0], group[0]))
                elif len(group) == 3 and group[1] == 'as':
                    names.append((group[0], group[2]))
                group = []
            elif isinstance(tok, tinycss2.ast.IdentToken):
                group.append(tok.value)
        return ValueImport(names, specifier, rule.source_line, rule.source_column)
    if prelude and isinstance(prelude[0], tinycss2.ast.IdentToken):
        tok = prelude[0]
        return ValueDefinition(tok.value, tok.source_line, tok.source_column)
    return None


def _walk(rules: Iterable[Any], out: List[Export]) -> None:
    for rule in rules:
        if isinstance(rule, tinycss2.ast.QualifiedRule):
            out.extend(_selector_classes(rule.prelude))
            for decl in tinycss2.parse_declaration_list(
                rule.content, skip_comments=True, skip_whitespace=True
            ):
                if isinstance(decl, tinycss2.ast.Declaration) and decl.lower_name == 'composes':
                    composes = _parse_composes(decl)
                    if composes:
                        out.append(composes)
        elif isinstance(rule, tinycss2.ast.AtRule):
            if rule.lower_at_keyword == 'import':
                prelude = _significant(rule.prelude)
                specifier = _string_value(prelude[0]) if prelude else None
                if specifier:
                    out.append(StaticImport(specifier, rule.source_line, rule.source_column))
            elif rule.lower_at_keyword in ('use', 'forward'):
                prelude = _significant(rule.prelude)
                specifier = _string_value(prelude[0]) if prelude else None
                # Built-in modules such as `sass:math` are not files.
                if specifier and not specifier.startswith('sass:'):
                    out.append(SassModuleRule(specifier, rule.source_line, rule.source_column))
            elif rule.lower_at_keyword == 'value':
                value = _parse_value(rule)
                if value:
                    out.append(value)
            elif rule.lower_at_keyword in NESTING_AT_RULES and rule.content is not None:
                _walk(
                    tinycss2.parse_rule_list(rule.content, skip_comments=True, skip_whitespace=True),
                    out,
                )


def find_exports(css: str) -> List[Export]:
    """List the class names, `@import`s, `@use`s, `composes` and `@value`s of
    `css` in the order they appear.

    """
    out: List[Export] = []
    _walk(tinycss2.parse_stylesheet(css, skip_comments=True, skip_whitespace=True), out)
    return out


class Locator:
    """Maps positions in compiled CSS back to the stylesheet they came from."""

    from_: str
    _consumer: Optional[SourceMapConsumer]

    def __init__(self, from_: str, source_map: Optional[Dict[str, Any]] = None, compiled: bool = False) -> None:
        self.from_ = from_
        self._consumer = SourceMapConsumer(source_map) if source_map else None
        self._compiled = compiled

    def original_location(self, name: str, line: int, column: int) -> OriginalLocation:
        """`line` and `column` are the 1-based position of the export in the
        compiled CSS.

        """
        if self._consumer is None:
            if self._compiled:
                # The compiler did not tell us where this came from.
                return OriginalLocation(None, Position(line, column), Position(line, column))
            return OriginalLocation(
                self.from_, Position(line, column), Position(line, column + len(name))
            )
        mapping = self._consumer.original_position_for(line - 1, column - 1)
        if mapping is None:
            return OriginalLocation(None, Position(line, column), Position(line, column))
        assert mapping.original_line is not None and mapping.original_column is not None
        start = Position(mapping.original_line, mapping.original_column + 1)
        return OriginalLocation(
            mapping.source, start, Position(start.line, start.column + len(name))
        )
