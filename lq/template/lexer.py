"""
Лексический анализатор шаблонов.

Токенизирует исходный текст шаблона, разбивая его на последовательность
токенов для последующего синтаксического анализа. Никогда не падает:
нераспознанные последовательности превращаются в TEXT-токены, а проверка
корректности откладывается до парсера.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Pattern, Tuple

from .tokens import Token, TokenType
from ..values import Value, StringValue, parse_number

logger = logging.getLogger(__name__)


class TemplateLexer:
    """
    Лексический анализатор шаблонов.

    Разбивает исходный текст на токены, учитывая контексты:
    - обычный текст
    - внутри вывода {{ ... }}
    - внутри тегов {% ... %}
    - внутри {% raw %} / {% comment %} (вторичный режим сканирования,
      всё содержимое до закрывающего тега - один TEXT-токен)
    """

    # Начало разметки
    _OPEN_RE = re.compile(r'\{[{%]')

    # Закрывающие разделители (с необязательным маркером обрезки)
    _CLOSE_PATTERNS = {
        TokenType.OUTPUT_CLOSE: re.compile(r'-?\}\}'),
        TokenType.TAG_CLOSE: re.compile(r'-?%\}'),
    }

    _WHITESPACE_RE = re.compile(r'\s+')

    # Токены содержимого разметки в порядке проверки
    _MARKUP_PATTERNS: List[Tuple[TokenType, Pattern[str]]] = [
        (TokenType.LITERAL, re.compile(r'"[^"]*"|\'[^\']*\'')),
        (TokenType.LITERAL, re.compile(r'-?\d+(?:\.\d+)?')),
        (TokenType.OPERATOR, re.compile(r'==|!=|<>|<=|>=|<|>')),
        (TokenType.DOTDOT, re.compile(r'\.\.')),
        (TokenType.DOT, re.compile(r'\.')),
        (TokenType.PIPE, re.compile(r'\|')),
        (TokenType.COLON, re.compile(r':')),
        (TokenType.COMMA, re.compile(r',')),
        (TokenType.LBRACKET, re.compile(r'\[')),
        (TokenType.RBRACKET, re.compile(r'\]')),
        (TokenType.LPAREN, re.compile(r'\(')),
        (TokenType.RPAREN, re.compile(r'\)')),
        (TokenType.ASSIGN, re.compile(r'=')),
        # Дефис допустим внутри имени, но не перед закрывающим разделителем
        (TokenType.IDENTIFIER, re.compile(r'[A-Za-z_](?:\w|-(?!%\}|\}\}))*\??')),
    ]

    # Ключевые слова-операторы
    _WORD_OPERATORS = {"and", "or", "contains"}

    # Теги, содержимое которых сканируется непрозрачно
    _RAW_TAGS = {"raw", "comment"}

    def __init__(self, text: str):
        self.text = text
        self.position = 0
        self.line = 1
        self.column = 1
        self.length = len(text)

    def tokenize(self) -> List[Token]:
        """
        Токенизирует весь исходный текст и возвращает список токенов.

        Последний токен всегда EOF. Каждый вызов начинает разбор заново.
        """
        self.position = 0
        self.line = 1
        self.column = 1

        tokens: List[Token] = []

        while self.position < self.length:
            match = self._OPEN_RE.search(self.text, self.position)
            if match is None:
                tokens.append(self._take(TokenType.TEXT, self.length - self.position))
                break

            if match.start() > self.position:
                tokens.append(self._take(TokenType.TEXT, match.start() - self.position))

            tokens.extend(self._tokenize_markup())

        # Добавляем EOF токен
        tokens.append(Token(TokenType.EOF, "", self.position, self.line, self.column))

        logger.debug(f"Tokenized template into {len(tokens)} tokens")
        return tokens

    def _tokenize_markup(self) -> List[Token]:
        """
        Токенизирует одну конструкцию {{ ... }} или {% ... %}.

        Текущая позиция указывает на открывающий разделитель.
        """
        is_output = self.text[self.position + 1] == '{'
        open_type = TokenType.OUTPUT_OPEN if is_output else TokenType.TAG_OPEN
        close_type = TokenType.OUTPUT_CLOSE if is_output else TokenType.TAG_CLOSE
        close_pattern = self._CLOSE_PATTERNS[close_type]

        trim = self.text.startswith('-', self.position + 2)
        result = [self._take(open_type, 3 if trim else 2, trim=trim)]

        closed = False
        while self.position < self.length:
            # Пропускаем пробелы
            whitespace = self._WHITESPACE_RE.match(self.text, self.position)
            if whitespace:
                self._advance(whitespace.end() - self.position)
                continue

            close = close_pattern.match(self.text, self.position)
            if close:
                value = close.group(0)
                result.append(self._take(close_type, len(value), trim=value.startswith('-')))
                closed = True
                break

            result.append(self._next_markup_token())

        if closed and not is_output:
            raw_text = self._scan_raw_body(result)
            if raw_text is not None:
                result.append(raw_text)

        return result

    def _next_markup_token(self) -> Token:
        """Извлекает следующий токен внутри разметки."""
        for token_type, pattern in self._MARKUP_PATTERNS:
            match = pattern.match(self.text, self.position)
            if not match:
                continue

            value = match.group(0)
            if token_type == TokenType.LITERAL:
                return self._take(token_type, len(value), literal=self._literal_value(value))
            if token_type == TokenType.IDENTIFIER and value in self._WORD_OPERATORS:
                return self._take(TokenType.OPERATOR, len(value))
            return self._take(token_type, len(value))

        # Неизвестный символ - откладываем ошибку до парсера
        return self._take(TokenType.TEXT, 1)

    def _scan_raw_body(self, tag_tokens: List[Token]) -> Optional[Token]:
        """
        Вторичный режим сканирования для {% raw %} и {% comment %}.

        Если только что закрытый тег открывает непрозрачный блок, захватывает
        всё до соответствующего закрывающего тега как один TEXT-токен.
        Сам закрывающий тег затем токенизируется обычным образом.
        """
        inner = [t for t in tag_tokens if t.type == TokenType.IDENTIFIER]
        if not inner or inner[0].value not in self._RAW_TAGS:
            return None
        # Имя тега должно идти первым после {%
        if tag_tokens[1] is not inner[0]:
            return None

        name = inner[0].value
        end_re = re.compile(r'\{%-?\s*end' + name + r'\s*-?%\}')
        match = end_re.search(self.text, self.position)
        end = match.start() if match else self.length

        if end == self.position:
            return None
        return self._take(TokenType.TEXT, end - self.position)

    @staticmethod
    def _literal_value(raw: str) -> Value:
        """Значение строкового или числового литерала."""
        if raw[0] in '"\'':
            return StringValue(raw[1:-1])
        number = parse_number(raw)
        if number is None:
            raise ValueError(f"Lexer matched non-numeric literal {raw!r}")
        return number

    def _take(
        self,
        token_type: TokenType,
        count: int,
        trim: bool = False,
        literal: Optional[Value] = None,
    ) -> Token:
        """Создаёт токен из следующих count символов и продвигает позицию."""
        token = Token(
            token_type,
            self.text[self.position:self.position + count],
            self.position,
            self.line,
            self.column,
            trim=trim,
            literal=literal,
        )
        self._advance(count)
        return token

    def _advance(self, count: int) -> None:
        """
        Перемещает позицию на указанное количество символов,
        обновляя номера строк и колонок.
        """
        chunk = self.text[self.position:self.position + count]
        newlines = chunk.count('\n')
        if newlines:
            self.line += newlines
            self.column = len(chunk) - chunk.rfind('\n')
        else:
            self.column += len(chunk)
        self.position += len(chunk)


def tokenize_template(text: str) -> List[Token]:
    """
    Удобная функция для токенизации шаблона.

    Args:
        text: Исходный текст шаблона

    Returns:
        Список токенов, заканчивающийся EOF
    """
    lexer = TemplateLexer(text)
    return lexer.tokenize()


__all__ = ["TemplateLexer", "tokenize_template"]
