import pytest
from hypothesis import given, strategies as st

from lunarlib.errors import LuaError
from lunarlib.luatable import LuaTable
from lunarlib.patterns import find, gmatch, gsub, match


def test_find_plain_substring():
    s = "hello world"
    start, end = find(s, "wor")
    assert s[start - 1:end] == "wor"
    assert start == s.index("wor") + 1


def test_find_plain_flag_ignores_specials():
    s = "a.b"
    start, end = find(s, ".", 1, True)
    assert s[start - 1:end] == "."
    assert start == s.index(".") + 1


def test_find_negative_init():
    s = "abcabc"
    start, end = find(s, "abc", -3)
    assert start == s.rindex("abc") + 1
    assert s[start - 1:end] == "abc"


def test_find_init_past_end_returns_none():
    assert find("abc", "", 10) is None


def test_find_empty_pattern_at_init():
    start, end = find("abc", "", 2)
    assert start == 2
    assert end == start - 1


def test_find_with_captures():
    s = "key=value"
    result = find(s, "(%w+)=(%w+)")
    assert result[2:] == ("key", "value")
    assert s[result[0] - 1:result[1]] == s


def test_find_not_found():
    assert find("hello", "xyz") is None
    assert find("hello", "%d") is None


def test_match_two_captures():
    assert match("key=value", "(%w+)=(%w+)") == ("key", "value")


def test_match_whole_when_no_captures():
    assert match("abc123def", "%d+") == "123"


def test_position_captures():
    s = "hello"
    assert match(s, "()ll()") == (s.index("ll") + 1, s.index("ll") + 1 + len("ll"))


def test_anchor():
    assert match("hello", "^ell") is None
    assert match("hello", "^hel") == "hel"


def test_dollar_anchor_and_literal_dollar():
    assert match("hello", "lo$") == "lo"
    assert match("hello", "el$") is None
    assert match("hello$x", "o$x") == "o$x"


def test_character_classes():
    s = "  abc123 "
    assert match(s, "%a+") == "abc"
    assert match(s, "%d+") == "123"
    assert match(s, "^%s*(.-)%s*$") == "abc123"
    assert match("abc123", "%A+") == "123"


def test_bracket_sets():
    assert match("x-y", "[%-]") == "-"
    assert match("hello", "[^hel]") == "o"
    assert match("zzabcd", "[a-c]+") == "abc"


def test_balanced_match():
    assert match("f(a(b)c) x", "%b()") == "(a(b)c)"


def test_frontier():
    s = "THE (quick) fox"
    assert list(gmatch(s, "%f[%a]%a+")) == ["THE", "quick", "fox"]


def test_back_reference():
    assert match('say "hi" now', "([\"'])(.-)%1") == ('"', "hi")


def test_lazy_and_greedy():
    assert match("<a><b>", "<(.-)>") == "a"
    assert match("<a><b>", "<(.*)>") == "a><b"


def test_optional_item():
    assert match("color", "colou?r") == "color"
    assert match("colour", "colou?r") == "colour"


def test_gmatch_words_equal_split():
    s = "one two  three four"
    assert list(gmatch(s, "%a+")) == s.split()


def test_gmatch_pairs():
    s = "a=1, b=2"
    assert dict(gmatch(s, "(%w+)=(%w+)")) == {"a": "1", "b": "2"}


def test_gmatch_empty_pattern_count():
    s = "abc"
    results = list(gmatch(s, ""))
    assert len(results) == len(s) + 1
    assert all(item == "" for item in results)


def test_gsub_string_matches_replace():
    s = "hello world"
    result, count = gsub(s, "o", "0")
    assert result == s.replace("o", "0")
    assert count == s.count("o")


def test_gsub_capture_references():
    s = "hello world"
    result, count = gsub(s, "(%w+)", "<%1>")
    assert result == " ".join(f"<{w}>" for w in s.split())
    assert count == len(s.split())


def test_gsub_whole_match_and_percent():
    result, _ = gsub("ab", "%w", "%0%%")
    assert result.replace("%", "") == "ab"
    assert result.count("%") == 2


def test_gsub_max_n():
    s = "aaa"
    result, count = gsub(s, "a", "b", 1)
    assert count == 1
    assert result == s.replace("a", "b", 1)


def test_gsub_function_and_false_keeps_original():
    s = "x y z"
    result, count = gsub(s, "%a", lambda c: c.upper() if c != "y" else None)
    assert result == "X y Z"
    assert count == 3


def test_gsub_mapping_and_luatable():
    s = "$name is $age"
    values = {"name": "Ann", "age": 7}
    result, _ = gsub(s, "%$(%w+)", values)
    assert result == "Ann is 7"
    table = LuaTable()
    table["name"] = "Bob"
    result, count = gsub(s, "%$(%w+)", table)
    assert result == "Bob is $age"
    assert count == 2


def test_gsub_anchor_replaces_once():
    result, count = gsub("aaa", "^a", "b")
    assert count == 1
    assert result == "b" + "aa"


def test_gsub_empty_pattern():
    s = "abc"
    result, count = gsub(s, "", "-")
    assert count == len(s) + 1
    assert result.replace("-", "") == s


def test_gsub_number_replacement():
    result, _ = gsub("a-b", "-", 5)
    assert result == "a5b"


def test_gsub_position_capture_in_replacement():
    result, _ = gsub("ab", "()b", "%1")
    assert result == "a" + str("ab".index("b") + 1)


@pytest.mark.parametrize(
    "pattern, message",
    [
        ("a%", "malformed pattern (ends with '%')"),
        ("[a", "malformed pattern (missing ']')"),
        ("(a)%2", "invalid capture index %2"),
        ("a)", "invalid pattern capture"),
        ("%fa", "missing '[' after '%f' in pattern"),
        ("%b", "malformed pattern (missing arguments to '%b')"),
    ],
)
def test_pattern_errors(pattern, message):
    with pytest.raises(LuaError) as info:
        match("aaa", pattern)
    assert info.value.message == message


def test_unfinished_capture():
    with pytest.raises(LuaError, match="unfinished capture"):
        match("a", "(a")


def test_too_many_captures():
    with pytest.raises(LuaError, match="too many captures"):
        match("a", "()" * 33)


def test_pattern_too_complex():
    with pytest.raises(LuaError, match="pattern too complex"):
        match("a" * 250, "a?" * 250)


def test_invalid_percent_in_replacement():
    with pytest.raises(LuaError, match="invalid use of '%' in replacement string"):
        gsub("abc", "b", "%x")


def test_invalid_replacement_value():
    with pytest.raises(LuaError, match=r"invalid replacement value \(a table\)"):
        gsub("abc", "b", lambda _: {})


def test_bad_replacement_argument():
    with pytest.raises(LuaError, match="string/function/table expected"):
        gsub("abc", "b", True)


def _escape(text):
    return "".join(ch if ch.isalnum() else "%" + ch for ch in text)


_ascii = st.text(alphabet=st.characters(min_codepoint=32, max_codepoint=126), max_size=20)


@given(_ascii, _ascii)
def test_escaped_pattern_matches_plain_find(haystack, needle):
    expected = haystack.find(needle)
    result = find(haystack, _escape(needle))
    if expected < 0:
        assert result is None
    else:
        assert result[:2] == (expected + 1, expected + len(needle))


@given(_ascii)
def test_gsub_dot_identity(text):
    result, count = gsub(text, ".", "%0")
    assert result == text
    assert count == len(text)