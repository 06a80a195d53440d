import curses
import unittest
from unittest.mock import MagicMock, patch

from errors import UserCancelled
from tui_utils import FormOption, FormState, SelectForm, labelled, prompt_select

ENTER = ord("\n")


def options():
    return [FormOption("Latest", "latest"), FormOption("8b", "8b"), FormOption("70b", "70b")]


class SelectFormTests(unittest.TestCase):
    def test_requires_options(self):
        with self.assertRaises(ValueError):
            SelectForm("Pick", [])

    def test_enter_without_confirmation_submits(self):
        form = SelectForm("Pick", options())
        form.handle_key(curses.KEY_DOWN)
        self.assertIs(form.handle_key(ENTER), FormState.SUBMITTED)
        self.assertEqual(form.value, "8b")
        self.assertTrue(form.confirmed)

    def test_confirmation_defaults_to_yes(self):
        form = SelectForm("Pick", options(), confirm_title="Would you like to continue?")
        form.handle_key(ord("G"))
        form.handle_key(ENTER)
        self.assertTrue(form.focus_confirm)
        self.assertIs(form.handle_key(ENTER), FormState.SUBMITTED)
        self.assertEqual(form.value, "70b")
        self.assertTrue(form.confirmed)

    def test_answering_no(self):
        form = SelectForm("Pick", options(), confirm_title="Continue?")
        form.handle_key(ENTER)
        self.assertIs(form.handle_key(ord("n")), FormState.SUBMITTED)
        self.assertFalse(form.confirmed)

    def test_left_right_toggle_answer(self):
        form = SelectForm("Pick", options(), confirm_title="Continue?")
        form.handle_key(9)
        form.handle_key(curses.KEY_RIGHT)
        self.assertFalse(form.confirmed)
        form.handle_key(curses.KEY_LEFT)
        self.assertTrue(form.confirmed)
        form.handle_key(curses.KEY_UP)
        self.assertFalse(form.focus_confirm)

    def test_cancel_keys(self):
        for key in (27, ord("q"), 3):
            form = SelectForm("Pick", options(), confirm_title="Continue?")
            self.assertIs(form.handle_key(key), FormState.CANCELLED)

    def test_selection_is_clamped(self):
        form = SelectForm("Pick", options())
        form.handle_key(curses.KEY_UP)
        self.assertEqual(form.index, 0)
        for _ in range(5):
            form.handle_key(ord("j"))
        self.assertEqual(form.index, 2)


class PromptSelectTests(unittest.TestCase):
    def run_prompt(self, keys, **kwargs):
        stdscr = MagicMock()
        stdscr.getmaxyx.return_value = (24, 80)
        stdscr.getch.side_effect = keys
        with patch("tui_utils.curses.wrapper", side_effect=lambda fn: fn(stdscr)):
            return prompt_select("Choose your tag for llama3", options(), **kwargs)

    def test_returns_value_and_answer(self):
        result = self.run_prompt([curses.KEY_DOWN, ENTER, ord("y")], confirm_title="Continue?")
        self.assertEqual(result, ("8b", True))

    def test_cancel_raises(self):
        with self.assertRaises(UserCancelled):
            self.run_prompt([27])

    def test_ctrl_c_raises(self):
        with self.assertRaises(UserCancelled):
            self.run_prompt(KeyboardInterrupt())


class LabelledTests(unittest.TestCase):
    def test_labels_default_to_values(self):
        opts = labelled(["a", "b"])
        self.assertEqual([(o.label, o.value) for o in opts], [("a", "a"), ("b", "b")])

    def test_explicit_labels(self):
        opts = labelled([1, 2], ["one", "two"])
        self.assertEqual([o.label for o in opts], ["one", "two"])


if __name__ == "__main__":
    unittest.main()
