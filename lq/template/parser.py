"""
Парсер шаблонов.

Преобразует последовательность токенов в AST. Вложенность блочных тегов
отслеживается явным стеком открытых блоков: каждый блочный тег кладёт
на стек кадр с ожидаемым закрывающим тегом, ветвящие теги (elsif, else,
when) допустимы только для подходящего кадра на вершине стека.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple

from .expression_parser import ExpressionParser
from .expressions import Expression, Operator
from .lexer import tokenize_template
from .nodes import (
    TemplateNode, TemplateAST, Template, TextNode, OutputNode,
    ConditionalBranch, IfNode, UnlessNode, WhenClause, CaseNode,
    ForNode, TableRowNode, BreakNode, ContinueNode,
    CaptureNode, AssignNode, IncrementNode, DecrementNode, CycleNode,
    RawNode, CommentNode, IncludeNode,
)
from .tokens import Token, TokenType
from .types import ParsingContext, describe_token
from ..config import EngineConfig, default_config
from ..errors import SyntaxErrorKind
from ..values import StringValue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockSyntax:
    """Описание блочного тега: закрывающий тег и допустимые ветви."""
    end_tag: str
    branch_tags: FrozenSet[str] = frozenset()


BLOCK_TAGS: Dict[str, BlockSyntax] = {
    "if": BlockSyntax("endif", frozenset({"elsif", "else"})),
    "unless": BlockSyntax("endunless", frozenset({"elsif", "else"})),
    "case": BlockSyntax("endcase", frozenset({"when", "else"})),
    "for": BlockSyntax("endfor", frozenset({"else"})),
    "tablerow": BlockSyntax("endtablerow"),
    "capture": BlockSyntax("endcapture"),
    "raw": BlockSyntax("endraw"),
    "comment": BlockSyntax("endcomment"),
}

BRANCH_TAGS = frozenset({"elsif", "else", "when"})


@dataclass
class Section:
    """Секция блока: ветка с заголовком и накопленным телом."""
    kind: str
    header: Any = None
    body: List[TemplateNode] = field(default_factory=list)


@dataclass
class BlockFrame:
    """Кадр стека открытых блоков."""
    tag: str
    syntax: BlockSyntax
    token: Token                 # имя открывающего тега, для диагностики
    sections: List[Section] = field(default_factory=list)
    seen_else: bool = False

    @property
    def body(self) -> List[TemplateNode]:
        return self.sections[-1].body


@dataclass(frozen=True)
class LoopHeader:
    """Разобранный заголовок for/tablerow."""
    variable: str
    collection: Expression
    modifiers: Dict[str, Expression]
    reversed: bool = False


class TemplateParser:
    """
    Парсер шаблонов с явным стеком блоков.

    Обрабатывает последовательность токенов и строит AST, проверяя
    соответствие открывающих и закрывающих тегов.
    """

    def __init__(self, tokens: List[Token], config: Optional[EngineConfig] = None):
        self.tokens = tokens
        self.config = config or default_config()
        self.ctx = ParsingContext(tokens)
        self.root: List[TemplateNode] = []
        self.stack: List[BlockFrame] = []

        # Обработчики одиночных (неблочных) тегов
        self._simple_tags: Dict[str, Callable[[Token, ExpressionParser], TemplateNode]] = {
            "assign": self._parse_assign,
            "increment": self._parse_increment,
            "decrement": self._parse_decrement,
            "cycle": self._parse_cycle,
            "include": self._parse_include,
            "render": self._parse_include,
            "echo": self._parse_echo,
            "break": self._parse_break,
            "continue": self._parse_continue,
        }

    def parse(self) -> TemplateAST:
        """
        Парсит всю последовательность токенов в AST.

        Returns:
            Кортеж корневых узлов AST

        Raises:
            TemplateSyntaxError: При ошибке синтаксического анализа
        """
        while not self.ctx.is_at_end():
            current = self.ctx.current()

            if current.type == TokenType.TEXT:
                self._parse_text()
            elif current.type == TokenType.OUTPUT_OPEN:
                self._parse_output()
            elif current.type == TokenType.TAG_OPEN:
                self._parse_tag()
            else:
                raise self.ctx.error(
                    f"Unexpected {describe_token(current)} at top level",
                    SyntaxErrorKind.UNEXPECTED_TOKEN,
                )

        if self.stack:
            frame = self.stack[-1]
            raise self.ctx.error(
                f"Unclosed '{frame.tag}' block, expected '{frame.syntax.end_tag}'",
                SyntaxErrorKind.UNMATCHED_BLOCK,
                frame.token,
            )

        return tuple(self.root)

    # ------------------------------------------------------------------ #
    # Текст и вывод
    # ------------------------------------------------------------------ #

    def _current_body(self) -> List[TemplateNode]:
        return self.stack[-1].body if self.stack else self.root

    def _parse_text(self) -> None:
        """Текстовый узел с флагами обрезки от соседних разделителей."""
        index = self.ctx.position
        token = self.ctx.advance()

        previous = self.tokens[index - 1] if index > 0 else None
        following = self.ctx.current()
        trim_left = previous is not None and previous.type in (TokenType.OUTPUT_CLOSE, TokenType.TAG_CLOSE) and previous.trim
        trim_right = following.type in (TokenType.OUTPUT_OPEN, TokenType.TAG_OPEN) and following.trim

        self._current_body().append(TextNode(token.value, trim_left, trim_right))

    def _parse_output(self) -> None:
        """Парсит {{ expression }}."""
        open_token, markup = self._collect_markup(TokenType.OUTPUT_CLOSE)
        if markup.is_at_end():
            raise self.ctx.error("Empty output expression", SyntaxErrorKind.MALFORMED_EXPRESSION, open_token)

        parser = self._expression_parser(markup)
        expression = parser.parse_expression()
        parser.expect_end()
        self._current_body().append(OutputNode(expression))

    def _collect_markup(self, close_type: TokenType) -> Tuple[Token, ParsingContext]:
        """
        Собирает токены между разделителями в отдельный контекст.

        Завершающий EOF указывает на закрывающий разделитель, чтобы ошибки
        «неожиданного конца» имели точную позицию.
        """
        open_token = self.ctx.advance()
        markup: List[Token] = []

        while not self.ctx.match(close_type):
            if self.ctx.is_at_end():
                delimiter = "{{" if close_type == TokenType.OUTPUT_CLOSE else "{%"
                raise self.ctx.error(
                    f"Unclosed '{delimiter}'", SyntaxErrorKind.UNEXPECTED_TOKEN, open_token
                )
            token = self.ctx.advance()
            if token.type == TokenType.TEXT:
                raise self.ctx.error(
                    f"Unexpected character '{token.value}'", SyntaxErrorKind.UNEXPECTED_TOKEN, token
                )
            markup.append(token)

        close = self.ctx.advance()
        markup.append(Token(TokenType.EOF, "", close.position, close.line, close.column))
        return open_token, ParsingContext(markup)

    def _expression_parser(self, markup: ParsingContext) -> ExpressionParser:
        return ExpressionParser(markup, self.config.max_nesting_depth)

    # ------------------------------------------------------------------ #
    # Теги
    # ------------------------------------------------------------------ #

    def _parse_tag(self) -> None:
        """Парсит {% name args %} и направляет к обработчику по имени."""
        open_token, markup = self._collect_markup(TokenType.TAG_CLOSE)

        name_token = markup.current()
        if name_token.type != TokenType.IDENTIFIER:
            raise markup.error(
                f"Expected tag name, got {describe_token(name_token)}",
                SyntaxErrorKind.UNEXPECTED_TOKEN,
            )
        markup.advance()
        name = name_token.value
        parser = self._expression_parser(markup)

        if name in BLOCK_TAGS:
            self._open_block(name, name_token, parser)
        elif name in BRANCH_TAGS:
            self._parse_branch(name, name_token, parser)
        elif name.startswith("end") and name[3:] in BLOCK_TAGS:
            parser.expect_end()
            self._close_block(name, name_token)
        elif name in self._simple_tags:
            node = self._simple_tags[name](name_token, parser)
            self._current_body().append(node)
        elif name.startswith("end"):
            raise markup.error(f"Unexpected '{name}'", SyntaxErrorKind.UNMATCHED_BLOCK, name_token)
        else:
            raise markup.error(f"Unknown tag '{name}'", SyntaxErrorKind.UNKNOWN_TAG, name_token)

    def _open_block(self, name: str, name_token: Token, parser: ExpressionParser) -> None:
        """Кладёт на стек кадр нового блока."""
        if len(self.stack) >= self.config.max_nesting_depth:
            raise parser.ctx.error(
                f"Block nesting exceeds {self.config.max_nesting_depth} levels",
                SyntaxErrorKind.NESTING_TOO_DEEP,
                name_token,
            )

        header: Any = None
        if name in ("if", "unless", "case"):
            header = self._parse_condition(parser)
        elif name == "for":
            header = self._parse_loop_header(parser, ("limit", "offset"), allow_reversed=True)
        elif name == "tablerow":
            header = self._parse_loop_header(parser, ("cols", "limit", "offset"), allow_reversed=False)
        elif name == "capture":
            header = self._parse_variable_name(parser)
            parser.expect_end()
        elif name == "raw":
            parser.expect_end()
        # comment принимает любые аргументы

        frame = BlockFrame(name, BLOCK_TAGS[name], name_token)
        frame.sections.append(Section(name, header))
        self.stack.append(frame)

    def _parse_branch(self, name: str, name_token: Token, parser: ExpressionParser) -> None:
        """Обрабатывает elsif / else / when для блока на вершине стека."""
        if not self.stack or name not in self.stack[-1].syntax.branch_tags:
            context = f" inside '{self.stack[-1].tag}'" if self.stack else ""
            raise parser.ctx.error(
                f"Unexpected '{name}'{context}", SyntaxErrorKind.UNMATCHED_BLOCK, name_token
            )

        frame = self.stack[-1]
        if frame.seen_else:
            raise parser.ctx.error(
                f"'{name}' after 'else' in '{frame.tag}' block",
                SyntaxErrorKind.UNMATCHED_BLOCK,
                name_token,
            )

        header: Any = None
        if name == "elsif":
            header = self._parse_condition(parser)
        elif name == "when":
            header = self._parse_when_values(parser)
        else:
            parser.expect_end()
            frame.seen_else = True

        # Между case и первым when допускается только отбрасываемый текст
        if frame.tag == "case" and len(frame.sections) == 1:
            dropped = [n for n in frame.body if not (isinstance(n, TextNode) and not n.text.strip())]
            if dropped:
                logger.warning(f"Discarding {len(dropped)} node(s) between 'case' and first branch")

        frame.sections.append(Section(name, header))

    def _close_block(self, name: str, name_token: Token) -> None:
        """Снимает кадр со стека, если закрывающий тег совпадает с вершиной."""
        if not self.stack:
            raise self.ctx.error(f"Unexpected '{name}'", SyntaxErrorKind.UNMATCHED_BLOCK, name_token)

        frame = self.stack[-1]
        if frame.syntax.end_tag != name:
            raise self.ctx.error(
                f"'{name}' does not close '{frame.tag}' (expected '{frame.syntax.end_tag}')",
                SyntaxErrorKind.UNMATCHED_BLOCK,
                name_token,
            )

        self.stack.pop()
        self._current_body().append(self._build_block(frame))

    def _build_block(self, frame: BlockFrame) -> TemplateNode:
        """Строит узел AST из закрытого кадра."""
        sections = frame.sections
        else_body = None
        if frame.seen_else:
            else_body = tuple(sections[-1].body)
            sections = sections[:-1]

        if frame.tag == "if":
            branches = tuple(ConditionalBranch(s.header, tuple(s.body)) for s in sections)
            return IfNode(branches, else_body)

        if frame.tag == "unless":
            first, rest = sections[0], sections[1:]
            elsif = tuple(ConditionalBranch(s.header, tuple(s.body)) for s in rest)
            return UnlessNode(first.header, tuple(first.body), elsif, else_body)

        if frame.tag == "case":
            whens = tuple(WhenClause(s.header, tuple(s.body)) for s in sections[1:])
            return CaseNode(sections[0].header, whens, else_body)

        if frame.tag == "for":
            header: LoopHeader = sections[0].header
            return ForNode(
                variable=header.variable,
                collection=header.collection,
                body=tuple(sections[0].body),
                else_body=else_body,
                limit=header.modifiers.get("limit"),
                offset=header.modifiers.get("offset"),
                reversed=header.reversed,
            )

        if frame.tag == "tablerow":
            header = sections[0].header
            return TableRowNode(
                variable=header.variable,
                collection=header.collection,
                body=tuple(sections[0].body),
                cols=header.modifiers.get("cols"),
                limit=header.modifiers.get("limit"),
                offset=header.modifiers.get("offset"),
            )

        if frame.tag == "capture":
            return CaptureNode(sections[0].header, tuple(sections[0].body))

        if frame.tag == "raw":
            return RawNode(_trimmed_text(sections[0].body))

        return CommentNode()

    # ------------------------------------------------------------------ #
    # Аргументы тегов
    # ------------------------------------------------------------------ #

    def _parse_condition(self, parser: ExpressionParser) -> Expression:
        if parser.ctx.is_at_end():
            raise parser.ctx.error("Expected condition", SyntaxErrorKind.MALFORMED_EXPRESSION)
        expression = parser.parse_expression()
        parser.expect_end()
        return expression

    def _parse_when_values(self, parser: ExpressionParser) -> Tuple[Expression, ...]:
        """Значения when: a, b или a or b."""
        values = [parser.parse_filtered()]
        while True:
            if parser.ctx.match(TokenType.COMMA):
                parser.ctx.advance()
            elif parser.ctx.match(TokenType.OPERATOR) and parser.ctx.current().value == Operator.OR.value:
                parser.ctx.advance()
            else:
                break
            values.append(parser.parse_filtered())
        parser.expect_end()
        return tuple(values)

    def _parse_variable_name(self, parser: ExpressionParser) -> str:
        """Имя переменной: идентификатор или строковый литерал."""
        token = parser.ctx.current()
        if token.type == TokenType.IDENTIFIER:
            parser.ctx.advance()
            return token.value
        if token.type == TokenType.LITERAL and isinstance(token.literal, StringValue):
            parser.ctx.advance()
            return token.literal.value
        raise parser.ctx.error(
            f"Expected variable name, got {describe_token(token)}",
            SyntaxErrorKind.MALFORMED_EXPRESSION,
        )

    def _parse_loop_header(
        self,
        parser: ExpressionParser,
        modifiers: Tuple[str, ...],
        allow_reversed: bool,
    ) -> LoopHeader:
        """
        Заголовок цикла: item in collection [reversed] [name: value ...]

        Модификаторы могут идти в любом порядке и разделяться запятыми.
        """
        ctx = parser.ctx
        variable = ctx.consume(TokenType.IDENTIFIER, "loop variable").value
        if not ctx.match_word("in"):
            raise ctx.error(
                f"Expected 'in', got {describe_token(ctx.current())}",
                SyntaxErrorKind.MALFORMED_EXPRESSION,
            )
        ctx.advance()
        collection = parser.parse_primary()

        values: Dict[str, Expression] = {}
        is_reversed = False
        while not ctx.is_at_end():
            token = ctx.current()
            if token.type == TokenType.COMMA:
                ctx.advance()
            elif allow_reversed and ctx.match_word("reversed"):
                ctx.advance()
                is_reversed = True
            elif token.type == TokenType.IDENTIFIER and token.value in modifiers and ctx.peek().type == TokenType.COLON:
                ctx.advance()
                ctx.advance()
                values[token.value] = parser.parse_primary()
            else:
                raise ctx.error(
                    f"Unexpected {describe_token(token)} in loop header",
                    SyntaxErrorKind.UNEXPECTED_TOKEN,
                )

        return LoopHeader(variable, collection, values, is_reversed)

    # ------------------------------------------------------------------ #
    # Одиночные теги
    # ------------------------------------------------------------------ #

    def _parse_assign(self, name_token: Token, parser: ExpressionParser) -> AssignNode:
        """assign name = expression"""
        variable = parser.ctx.consume(TokenType.IDENTIFIER, "variable name").value
        parser.ctx.consume(TokenType.ASSIGN, "'='")
        expression = parser.parse_expression()
        parser.expect_end()
        return AssignNode(variable, expression)

    def _parse_increment(self, name_token: Token, parser: ExpressionParser) -> IncrementNode:
        variable = parser.ctx.consume(TokenType.IDENTIFIER, "counter name").value
        parser.expect_end()
        return IncrementNode(variable)

    def _parse_decrement(self, name_token: Token, parser: ExpressionParser) -> DecrementNode:
        variable = parser.ctx.consume(TokenType.IDENTIFIER, "counter name").value
        parser.expect_end()
        return DecrementNode(variable)

    def _parse_cycle(self, name_token: Token, parser: ExpressionParser) -> CycleNode:
        """cycle [group:] value, value, ..."""
        ctx = parser.ctx
        group: Optional[Expression] = None
        first = parser.parse_primary()
        if ctx.match(TokenType.COLON):
            ctx.advance()
            group = first
            first = parser.parse_primary()

        values = [first]
        while ctx.match(TokenType.COMMA):
            ctx.advance()
            values.append(parser.parse_primary())
        parser.expect_end()
        return CycleNode(tuple(values), group)

    def _parse_include(self, name_token: Token, parser: ExpressionParser) -> IncludeNode:
        """include/render 'name'[, key: value ...]"""
        ctx = parser.ctx
        if ctx.is_at_end():
            raise ctx.error("Expected template name", SyntaxErrorKind.MALFORMED_EXPRESSION)
        template_name = parser.parse_primary()

        arguments: List[Tuple[str, Expression]] = []
        while not ctx.is_at_end():
            if ctx.match(TokenType.COMMA):
                ctx.advance()
                continue
            key = ctx.consume(TokenType.IDENTIFIER, "argument name").value
            ctx.consume(TokenType.COLON, "':'")
            arguments.append((key, parser.parse_filtered()))

        return IncludeNode(
            template_name,
            tuple(arguments),
            isolated=name_token.value == "render",
            line=name_token.line,
            column=name_token.column,
        )

    def _parse_echo(self, name_token: Token, parser: ExpressionParser) -> OutputNode:
        """echo expression: то же, что {{ expression }}"""
        expression = parser.parse_expression()
        parser.expect_end()
        return OutputNode(expression)

    def _parse_break(self, name_token: Token, parser: ExpressionParser) -> BreakNode:
        parser.expect_end()
        return BreakNode()

    def _parse_continue(self, name_token: Token, parser: ExpressionParser) -> ContinueNode:
        parser.expect_end()
        return ContinueNode()


def _trimmed_text(body: List[TemplateNode]) -> str:
    """Склеивает текст тела raw, применяя обрезку пробелов на этапе разбора."""
    parts = []
    for node in body:
        if isinstance(node, TextNode):
            text = node.text
            if node.trim_left:
                text = text.lstrip()
            if node.trim_right:
                text = text.rstrip()
            parts.append(text)
    return "".join(parts)


def parse_template(source: str, name: str = "", config: Optional[EngineConfig] = None) -> Template:
    """
    Удобная функция для компиляции шаблона из исходного текста.

    Args:
        source: Исходный текст шаблона
        name: Имя шаблона для диагностики
        config: Настройки движка (пределы вложенности)

    Returns:
        Скомпилированный шаблон

    Raises:
        TemplateSyntaxError: При ошибке синтаксического анализа
    """
    tokens = tokenize_template(source)
    parser = TemplateParser(tokens, config)
    nodes = parser.parse()
    logger.debug(f"Parsed template '{name}' into {len(nodes)} top-level nodes")
    return Template(name, nodes)


__all__ = [
    "TemplateParser",
    "BlockSyntax",
    "BlockFrame",
    "Section",
    "LoopHeader",
    "BLOCK_TAGS",
    "parse_template",
]
