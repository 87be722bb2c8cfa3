"""
Тесты для лексического анализатора шаблонов.

Проверяет токенизацию:
- обычного текста и позиций
- разметки вывода {{ ... }} и тегов {% ... %}
- литералов, операторов и маркеров обрезки
- непрозрачных блоков raw / comment
"""

from decimal import Decimal

import pytest

from lq.template.lexer import TemplateLexer, tokenize_template
from lq.template.tokens import TokenType
from lq.values import IntegerValue, DecimalValue, StringValue


def types_of(text):
    return [token.type for token in tokenize_template(text)]


class TestTemplateLexer:
    """Базовая функциональность лексера."""

    def test_empty_template(self):
        """Пустой шаблон даёт только EOF."""
        tokens = TemplateLexer("").tokenize()

        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF
        assert tokens[0].position == 0
        assert tokens[0].line == 1
        assert tokens[0].column == 1

    def test_plain_text(self):
        text = "Hello, world!"
        tokens = tokenize_template(text)

        assert len(tokens) == 2
        assert tokens[0].type == TokenType.TEXT
        assert tokens[0].value == text
        assert tokens[1].type == TokenType.EOF

    def test_multiline_positions(self):
        """EOF после многострочного текста стоит на последней строке."""
        tokens = tokenize_template("Line 1\nLine 2\nLine 3")

        assert tokens[-1].line == 3
        assert tokens[-1].column == 7
        assert tokens[-1].position == 20

    def test_tokenize_resets_state(self):
        lexer = TemplateLexer("a {{ b }}")
        first = lexer.tokenize()
        second = lexer.tokenize()

        assert first == second

    def test_lone_brace_is_text(self):
        tokens = tokenize_template("a { b } c")

        assert [t.type for t in tokens] == [TokenType.TEXT, TokenType.EOF]


class TestMarkup:
    """Разметка вывода и тегов."""

    def test_output(self):
        assert types_of("{{ name }}") == [
            TokenType.OUTPUT_OPEN,
            TokenType.IDENTIFIER,
            TokenType.OUTPUT_CLOSE,
            TokenType.EOF,
        ]

    def test_text_around_output(self):
        tokens = tokenize_template("Hi {{ name }}!")

        assert tokens[0].value == "Hi "
        assert tokens[-2].type == TokenType.TEXT
        assert tokens[-2].value == "!"

    def test_tag_with_filter_chain(self):
        assert types_of("{{ a.b[0] | join: ', ' }}") == [
            TokenType.OUTPUT_OPEN,
            TokenType.IDENTIFIER,
            TokenType.DOT,
            TokenType.IDENTIFIER,
            TokenType.LBRACKET,
            TokenType.LITERAL,
            TokenType.RBRACKET,
            TokenType.PIPE,
            TokenType.IDENTIFIER,
            TokenType.COLON,
            TokenType.LITERAL,
            TokenType.OUTPUT_CLOSE,
            TokenType.EOF,
        ]

    def test_assign_tag(self):
        assert types_of("{% assign x = 1 %}") == [
            TokenType.TAG_OPEN,
            TokenType.IDENTIFIER,
            TokenType.IDENTIFIER,
            TokenType.ASSIGN,
            TokenType.LITERAL,
            TokenType.TAG_CLOSE,
            TokenType.EOF,
        ]

    def test_range_tokens(self):
        """Число перед '..' не поглощает точки."""
        tokens = tokenize_template("{{ (1..5) }}")
        kinds = [t.type for t in tokens]

        assert kinds[1:6] == [
            TokenType.LPAREN,
            TokenType.LITERAL,
            TokenType.DOTDOT,
            TokenType.LITERAL,
            TokenType.RPAREN,
        ]
        assert tokens[2].literal == IntegerValue(1)
        assert tokens[4].literal == IntegerValue(5)

    def test_markup_positions(self):
        tokens = tokenize_template("ab\n{{ x }}")

        open_token = tokens[1]
        assert open_token.type == TokenType.OUTPUT_OPEN
        assert open_token.line == 2
        assert open_token.column == 1
        assert open_token.position == 3

        ident = tokens[2]
        assert ident.line == 2
        assert ident.column == 4


class TestLiterals:
    """Литералы и операторы."""

    def test_non_numeric_literal_text_is_rejected(self):
        with pytest.raises(ValueError, match="non-numeric literal"):
            TemplateLexer._literal_value("abc")

    def test_string_literals(self):
        tokens = tokenize_template("{{ \"double\" }}{{ 'single' }}")
        literals = [t for t in tokens if t.type == TokenType.LITERAL]

        assert literals[0].literal == StringValue("double")
        assert literals[1].literal == StringValue("single")

    def test_number_literals(self):
        tokens = tokenize_template("{{ 42 }}{{ -7 }}{{ 3.25 }}")
        literals = [t.literal for t in tokens if t.type == TokenType.LITERAL]

        assert literals == [IntegerValue(42), IntegerValue(-7), DecimalValue(Decimal("3.25"))]

    def test_comparison_operators(self):
        tokens = tokenize_template("{% if a == 1 and b != 2 or c <> 3 %}")
        operators = [t.value for t in tokens if t.type == TokenType.OPERATOR]

        assert operators == ["==", "and", "!=", "or", "<>"]

    def test_contains_is_operator(self):
        tokens = tokenize_template("{% if list contains 'x' %}")

        assert tokens[3].type == TokenType.OPERATOR
        assert tokens[3].value == "contains"

    def test_ordering_operators(self):
        tokens = tokenize_template("{{ a <= b >= c < d > e }}")
        operators = [t.value for t in tokens if t.type == TokenType.OPERATOR]

        assert operators == ["<=", ">=", "<", ">"]

    def test_identifier_with_hyphen_and_question_mark(self):
        tokens = tokenize_template("{{ my-var empty? }}")

        assert tokens[1].value == "my-var"
        assert tokens[2].value == "empty?"

    def test_hyphen_before_close_is_trim(self):
        tokens = tokenize_template("{{ name-}}")

        assert tokens[1].value == "name"
        assert tokens[2].type == TokenType.OUTPUT_CLOSE
        assert tokens[2].trim is True

    def test_unknown_character_becomes_text(self):
        tokens = tokenize_template("{{ a $ b }}")

        assert tokens[2].type == TokenType.TEXT
        assert tokens[2].value == "$"


class TestTrimMarkers:
    """Маркеры обрезки пробелов."""

    def test_trim_flags_on_delimiters(self):
        tokens = tokenize_template("{%- if x -%}{{- y -}}")

        assert tokens[0].type == TokenType.TAG_OPEN and tokens[0].trim
        assert tokens[3].type == TokenType.TAG_CLOSE and tokens[3].trim
        assert tokens[4].type == TokenType.OUTPUT_OPEN and tokens[4].trim
        assert tokens[6].type == TokenType.OUTPUT_CLOSE and tokens[6].trim

    def test_no_trim_by_default(self):
        tokens = tokenize_template("{% if x %}")

        assert not tokens[0].trim
        assert not tokens[-2].trim


class TestRawBlocks:
    """Непрозрачное сканирование raw и comment."""

    def test_raw_body_is_single_text(self):
        tokens = tokenize_template("{% raw %}{{ not parsed }} {% if %}{% endraw %}")

        texts = [t for t in tokens if t.type == TokenType.TEXT]
        assert len(texts) == 1
        assert texts[0].value == "{{ not parsed }} {% if %}"

    def test_comment_body_is_single_text(self):
        tokens = tokenize_template("{% comment %}{% bogus %}{% endcomment %}after")

        texts = [t.value for t in tokens if t.type == TokenType.TEXT]
        assert texts == ["{% bogus %}", "after"]

    def test_raw_end_with_trim_markers(self):
        tokens = tokenize_template("{% raw %} x {%- endraw -%}")

        texts = [t.value for t in tokens if t.type == TokenType.TEXT]
        assert texts == [" x "]

    def test_unterminated_raw_captures_rest(self):
        tokens = tokenize_template("{% raw %}{{ x }} tail")

        assert tokens[-2].type == TokenType.TEXT
        assert tokens[-2].value == "{{ x }} tail"

    def test_empty_raw_body(self):
        assert TokenType.TEXT not in types_of("{% raw %}{% endraw %}")
