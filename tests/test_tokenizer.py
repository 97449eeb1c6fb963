"""Tests for the quote-aware tokenizer."""

import pytest

from memsh.tokenizer import (
    is_comment_or_blank,
    parse_command_line,
    quote_arg_if_needed,
    tokenize,
)


class TestTokenize:
    def test_whitespace_separates(self):
        result = tokenize("ls  -l\t/tmp")
        assert result.values == ["ls", "-l", "/tmp"]
        assert not result.ends_with_space
        assert not result.unterminated_quote

    def test_double_quoted_span_is_one_token(self):
        result = tokenize('touch "My Folder/a.txt"')
        assert result.values == ["touch", "My Folder/a.txt"]

        token = result.tokens[1]
        assert token.raw_start == 6
        assert token.raw_end == len('touch "My Folder/a.txt"')
        assert token.quote_char == '"'
        assert token.had_quotes

    def test_single_quotes(self):
        assert tokenize("echo 'a \"b\" c'").values == ["echo", 'a "b" c']

    def test_backslash_escapes_space(self):
        assert tokenize(r"echo a\ b").values == ["echo", "a b"]

    def test_backslash_inside_quotes(self):
        assert tokenize(r'echo "a\"b"').values == ["echo", 'a"b']

    def test_trailing_backslash_is_literal(self):
        assert tokenize("echo abc\\").values == ["echo", "abc\\"]

    def test_unterminated_quote_is_flagged(self):
        result = tokenize('cat "open file')
        assert result.unterminated_quote
        assert result.values == ["cat", "open file"]

    def test_adjacent_quoted_and_bare_parts_join(self):
        assert tokenize('a"b c"d').values == ['ab cd']

    def test_empty_quotes_make_empty_token(self):
        assert tokenize('echo ""').values == ["echo", ""]

    def test_ends_with_space(self):
        assert tokenize("ls ").ends_with_space
        assert not tokenize("ls").ends_with_space

    def test_empty_input(self):
        result = tokenize("")
        assert result.tokens == []
        assert not result.ends_with_space

    def test_unquoted_token_has_no_quote_char(self):
        token = tokenize("plain").tokens[0]
        assert token.quote_char is None
        assert not token.had_quotes
        assert (token.raw_start, token.raw_end) == (0, 5)


class TestParseCommandLine:
    def test_command_and_args(self):
        parsed = parse_command_line('cp "a b" c')
        assert parsed.command == "cp"
        assert parsed.args == ["a b", "c"]

    def test_blank(self):
        parsed = parse_command_line("   ")
        assert parsed.command == ""
        assert parsed.args == []


class TestQuoteArgIfNeeded:
    def test_plain_value_unchanged(self):
        assert quote_arg_if_needed("docs/") == "docs/"

    def test_space_is_double_quoted_by_default(self):
        assert quote_arg_if_needed("My Folder/") == '"My Folder/"'

    def test_single_quote_style(self):
        assert quote_arg_if_needed("My Folder/", "'") == "'My Folder/'"

    def test_only_active_quote_and_backslash_escaped(self):
        assert quote_arg_if_needed("it's here", "'") == "'it\\'s here'"
        assert quote_arg_if_needed('say "hi"', '"') == '"say \\"hi\\""'
        assert quote_arg_if_needed("it's", '"') == '"it\'s"'

    @pytest.mark.parametrize("value", ["a b", "back\\slash", 'dq"', "sq'", "tab\there"])
    def test_quoted_value_tokenizes_back(self, value):
        for quote in ('"', "'"):
            assert tokenize(quote_arg_if_needed(value, quote)).values == [value]


@pytest.mark.parametrize(
    "line,expected",
    [
        ("", True),
        ("   ", True),
        ("# comment", True),
        ("  // comment", True),
        ("ls", False),
        ("echo #not-a-comment", False),
    ],
)
def test_is_comment_or_blank(line, expected):
    assert is_comment_or_blank(line) is expected
