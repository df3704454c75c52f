import pytest

from licmatch.core.normalize import (
    first_license_token,
    is_license_text_equivalent,
    is_single_token_string,
    normalize,
    render,
    token_texts,
)


def test_tokenize_collapses_whitespace_and_case():
    assert token_texts("COPYRIGHT   I B M   CORPORATION 2002") == [
        "copyright",
        "i",
        "b",
        "m",
        "corporation",
        "2002",
    ]


def test_copyright_holder_phrase_is_one_token_with_position():
    tokens = normalize('THIS SOFTWARE IS PROVIDED BY COPYRIGHT HOLDER "AS IS" AND')

    assert len(tokens) == 11
    holder = tokens[5]
    assert holder.text == "copyright-holder"
    assert (holder.line, holder.column) == (1, 29)
    assert tokens[6].text == '"'
    assert tokens[9].text == '"'


def test_phrase_table_merges_across_lines():
    assert token_texts("ten per\ncent") == ["ten", "percent"]
    assert token_texts("the copyright owners") == ["the", "copyright-holders"]
    assert token_texts("(c) 2020") == ["(c)", "2020"]
    assert token_texts("''quoted''") == ['"', "quoted", '"']


def test_spelling_variants_collapse():
    assert token_texts("Licence & Organisation") == ["license", "and", "organization"]


def test_positions_survive_comment_stripping():
    tokens = normalize("line one\n//   indented")
    last = tokens[-1]
    assert last.text == "indented"
    assert (last.line, last.column) == (2, 5)


def test_start_column_keeps_leading_markers():
    assert token_texts("* foo") == ["foo"]
    tokens = normalize("* foo", start_line=3, start_column=4)
    assert [t.text for t in tokens] == ["*", "foo"]
    assert (tokens[0].line, tokens[0].column) == (3, 4)


def test_separator_lines_are_dropped():
    assert token_texts("alpha\n-----\nbeta\n=====") == ["alpha", "beta"]


def test_empty_and_none_inputs():
    assert normalize("") == ()
    assert normalize(None) == ()
    assert normalize("   \n\t ") == ()


@pytest.mark.parametrize(
    "left,right",
    [
        ("Hello  World", "hello world"),
        ("a\u2009b\u00a0c\u200bd", "a b c d"),
        ("one\uff0c two\u3001three", "one, two, three"),
        ("non\u2013exclusive \u2014 grant", "non-exclusive - grant"),
        ("/* Permission is granted */", "Permission is granted"),
        ("/**\n * Permission is\n * granted\n */", "Permission is granted"),
        ("// first\n// second", "first second"),
        ("# first\n# second", "first second"),
        ("REM first\nREM second", "first second"),
        ("<!-- first second -->", "first second"),
        ("The Licence", "the license"),
        ("(c) 2020 Foo", "Copyright 2020 Foo"),
        ("\u00a9 2020 Foo", "(C) 2020 Foo"),
        ("see http://example.org", "see https://example.org"),
        ("\u201cquoted\u201d", '"quoted"'),
        ("\u2018quoted\u2019", "'quoted'"),
        ("It's \"fine\"", "It's 'fine'"),
        ("a\r\nb\rc", "a b c"),
    ],
)
def test_license_text_equivalent(left, right):
    assert is_license_text_equivalent(left, right)
    assert is_license_text_equivalent(right, left)


def test_license_text_equivalence_is_punctuation_sensitive():
    assert is_license_text_equivalent("alpha beta", "ALPHA BETA")
    assert not is_license_text_equivalent("alpha beta", "alpha, beta")
    assert not is_license_text_equivalent("alpha beta", "alpha beta gamma")


def test_license_text_equivalence_none_handling():
    assert is_license_text_equivalent(None, None)
    assert is_license_text_equivalent(None, "")
    assert is_license_text_equivalent("", None)
    assert not is_license_text_equivalent(None, "text")


@pytest.mark.parametrize(
    "extra",
    ["", "\n-- -- doubled dashes", "\n* * doubled stars", "\ntrailing stars */ */", "\n/* # mixed markers"],
)
def test_normalize_is_idempotent_on_rendered_text(extra):
    text = (
        "Copyright (c) 2020 Foo Corp.\n"
        '/* Licensed under the "Apache" licence, per cent. */\n'
        "THE SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS & CONTRIBUTORS"
        + extra
    )
    first = normalize(text)
    again = normalize(render(first))

    assert [t.text for t in again] == [t.text for t in first]
    assert "copyright-holders" in [t.text for t in first]


def test_first_license_token_and_single_token_string():
    assert first_license_token("  Hello world") == "hello"
    assert first_license_token("") is None
    assert is_single_token_string("MIT")
    assert is_single_token_string("")
    assert not is_single_token_string("two words")
    assert not is_single_token_string("one\ntwo")


def test_token_key_applies_match_equivalents():
    keys = [t.key for t in normalize('copyright (c) \u00a9 " http')]
    assert keys == ["-c-", "-c-", "-c-", "'", "https"]


def test_tokens_keep_source_wording():
    tokens = normalize("The Copyright   Owner & \u201cLicence\u201d (C)")

    assert [t.text for t in tokens] == ["the", "copyright-holder", "and", '"', "license", '"', "(c)"]
    assert [t.source for t in tokens] == ["The", "Copyright Owner", "&", "\u201c", "Licence", "\u201d", "(C)"]
    holder = tokens[1]
    assert (holder.line, holder.column) == (1, 4)
    assert holder.end == (1, 21)
    assert tokens[3].touches(tokens[4])
    assert not tokens[1].touches(tokens[2])


def test_repeated_comment_markers_are_stripped():
    assert token_texts("-- -- foo bar") == ["foo", "bar"]
    assert token_texts("* * foo bar") == ["foo", "bar"]
    assert token_texts("foo bar */ */") == ["foo", "bar"]
