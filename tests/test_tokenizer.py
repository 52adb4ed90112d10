import pytest

from simple_gcode.gcode_tokenizer import LineKind, remove_words, tokenize
from simple_gcode.utils.exceptions import MalformedWordError, UnrecognizedWordError


def test_words_and_values():
    line = tokenize("G1 X10.5 Y-2 F.5 ; trailing comment")
    assert line.kind is LineKind.WORDS
    assert [w.letter for w in line.words] == ["G", "X", "Y", "F"]
    assert [w.value for w in line.words] == [1.0, 10.5, -2.0, 0.5]


def test_lowercase_letters_are_normalized():
    line = tokenize("g1 x1")
    assert [w.letter for w in line.words] == ["G", "X"]


def test_spaces_inside_values_are_skipped():
    line = tokenize("G1 X 1 0")
    assert line.words[1].value == 10.0


def test_paren_comment_and_message():
    line = tokenize("(MSG,Hello world) G0 X1 (note)")
    assert line.message == "Hello world"
    assert line.comments == ("MSG,Hello world", "note")
    assert [w.letter for w in line.words] == ["G", "X"]


def test_byte_order_mark_and_line_ending_removed():
    line = tokenize("\ufeffG0 X1\r\n")
    assert line.source == "G0 X1"
    assert len(line.words) == 2


@pytest.mark.parametrize(
    "text,kind",
    [
        ("", LineKind.EMPTY),
        ("   ", LineKind.EMPTY),
        ("; just a comment", LineKind.COMMENT),
        ("$H", LineKind.PASS_THROUGH),
        ("?", LineKind.PASS_THROUGH),
        ("~", LineKind.PASS_THROUGH),
        ("%", LineKind.DEMARCATION),
    ],
)
def test_line_classification(text, kind):
    assert tokenize(text).kind is kind


@pytest.mark.parametrize("text", ["G1 X", "G1 X1.2.3", "G1 X--1"])
def test_malformed_values(text):
    with pytest.raises(MalformedWordError):
        tokenize(text)


@pytest.mark.parametrize("text", ["12 G1", "G1 *5", "G1 X1 #2"])
def test_words_must_start_with_letter(text):
    with pytest.raises(UnrecognizedWordError):
        tokenize(text)


def test_remove_words_keeps_rest_of_line():
    line = tokenize("T1 M6 (change)")
    m6 = [w for w in line.words if w.letter == "M"]
    assert remove_words(line.source, m6) == "T1 (change)"


def test_remove_all_words_leaves_placeholder():
    line = tokenize("M6")
    assert remove_words(line.source, line.words) == "(line removed)"
