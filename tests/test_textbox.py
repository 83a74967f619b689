import pytest

from citybuilder.textbox import TextBox


def make_box(text="", max_length=10):
    box = TextBox(x=200, y=200, width=250, height=30, max_length=max_length, text=text)
    box.cursor_pos = len(text)
    return box


def char_width(text):
    return len(text) * 10


def test_insert_at_caret():
    box = make_box("ac")
    box.cursor_pos = 1
    assert box.insert("b") is True
    assert box.text == "abc"
    assert box.cursor_pos == 2


def test_insert_respects_max_length():
    box = make_box(max_length=3)
    assert box.insert("abcdef") is True
    assert box.text == "abc"
    assert box.cursor_pos == len(box.text)


def test_insert_when_full_changes_nothing():
    box = make_box("abc", max_length=3)
    assert box.insert("x") is False
    assert box.text == "abc"


def test_backspace_removes_previous_char():
    box = make_box("abc")
    assert box.backspace() is True
    assert box.text == "ab"
    assert box.cursor_pos == len("ab")


def test_backspace_at_start_does_nothing():
    box = make_box("abc")
    box.cursor_pos = 0
    assert box.backspace() is False
    assert box.text == "abc"


def test_delete_forward():
    box = make_box("abc")
    box.cursor_pos = 0
    assert box.delete_forward() is True
    assert box.text == "bc"
    assert box.cursor_pos == 0


def test_delete_forward_at_end_does_nothing():
    box = make_box("abc")
    assert box.delete_forward() is False
    assert box.text == "abc"


def test_move_left_and_right_stay_in_bounds():
    box = make_box("ab")
    box.move_right()
    assert box.cursor_pos == len("ab")
    box.move_left()
    box.move_left()
    box.move_left()
    assert box.cursor_pos == 0
    box.move_right()
    assert box.cursor_pos == 1


def test_focus_outside_unfocuses():
    box = make_box("abc")
    box.focused = True
    assert box.focus_at(0, 0, char_width) is False
    assert box.focused is False
    assert box.show_cursor is False


def test_focus_far_right_puts_caret_at_end():
    box = make_box("abcdef")
    box.cursor_pos = 0
    assert box.focus_at(440, 210, char_width) is True
    assert box.focused is True
    assert box.cursor_pos == len("abcdef")


def test_focus_at_left_edge_puts_caret_at_start():
    box = make_box("abcdef")
    assert box.focus_at(200, 210, char_width) is True
    assert box.cursor_pos == 0


def test_focus_in_middle_of_text():
    box = make_box("abcdef")
    box.focus_at(200 + 5 + 25, 210, char_width)
    assert box.cursor_pos == 2


def test_focus_edges_of_rect():
    box = make_box("abc")
    assert box.focus_at(200 + 250, 210, char_width) is False
    assert box.focus_at(200, 200, char_width) is True


@pytest.mark.parametrize("elapsed, toggled", [(0.6, True), (0.4, False)])
def test_update_blink(elapsed, toggled):
    box = make_box()
    before = box.show_cursor
    start = box.cursor_blink
    box.update_blink(start + elapsed)
    assert (box.show_cursor != before) is toggled
    assert box.cursor_blink == (start + elapsed if toggled else start)