import unittest
from unittest.mock import MagicMock

from errors import EmptyResultError, FetchError, UserCancelled
from model_types import CatalogEntry, InstalledModel, ManageAction, RunningModel, Tab
from picker import fetch_lists, model_picker


def no_spinner(title, fn):
    return fn()


def screen_with_keys(*keys):
    def screen(fn):
        stdscr = MagicMock()
        stdscr.getmaxyx.return_value = (30, 120)
        stdscr.getch.side_effect = list(keys)
        return fn(stdscr)

    return screen


class FetchListsTests(unittest.TestCase):
    def test_only_configured_tabs_are_fetched(self):
        client = MagicMock()
        client.list_installed.return_value = [InstalledModel(name="llama3:latest")]
        catalog = MagicMock()
        lists = fetch_lists(client, catalog, [Tab.MANAGE], spin=no_spinner)
        self.assertEqual(list(lists), [Tab.MANAGE])
        catalog.installable_models.assert_not_called()
        client.list_running.assert_not_called()

    def test_spinner_titles(self):
        client = MagicMock()
        client.list_installed.return_value = []
        client.list_running.return_value = []
        catalog = MagicMock()
        catalog.installable_models.return_value = []
        titles = []

        def spin(title, fn):
            titles.append(title)
            return fn()

        fetch_lists(client, catalog, list(Tab), spin=spin)
        self.assertEqual(
            titles,
            ["Loading installable models...", "Loading installed models...", "Loading running models..."],
        )

    def test_first_failure_aborts(self):
        client = MagicMock()
        catalog = MagicMock()
        catalog.installable_models.side_effect = FetchError("could not reach catalog")
        with self.assertRaises(FetchError):
            fetch_lists(client, catalog, list(Tab), spin=no_spinner)
        client.list_installed.assert_not_called()


class ModelPickerTests(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.client.list_installed.return_value = [
            InstalledModel(name="llama3:latest"),
            InstalledModel(name="phi3:mini"),
        ]
        self.client.list_running.return_value = [RunningModel(name="llama3:latest", size=10, size_vram=5)]
        self.catalog = MagicMock()
        self.catalog.installable_models.return_value = [CatalogEntry(name="llama3"), CatalogEntry(name="mistral")]

    def pick(self, *keys, tabs=tuple(Tab), approved=None, choose=None):
        return model_picker(
            self.client,
            self.catalog,
            tabs,
            approved,
            spin=no_spinner,
            screen=screen_with_keys(*keys),
            choose=choose or MagicMock(),
        )

    def test_install_selection(self):
        context = self.pick(ord("j"), ord("\n"))
        self.assertIs(context.action, Tab.INSTALL)
        self.assertEqual(context.model_name, "mistral")

    def test_single_approved_action_resolved_silently(self):
        choose = MagicMock()
        context = self.pick(ord("\n"), tabs=[Tab.MANAGE], approved=[ManageAction.DELETE], choose=choose)
        self.assertIs(context.manage_action, ManageAction.DELETE)
        choose.assert_not_called()

    def test_manage_commit_prompts_for_action(self):
        choose = MagicMock(return_value=(ManageAction.UPDATE, True))
        context = self.pick(9, ord("\n"), choose=choose)
        self.assertIs(context.action, Tab.MANAGE)
        self.assertIs(context.manage_action, ManageAction.UPDATE)
        choose.assert_called_once()

    def test_shortcut_skips_prompt(self):
        choose = MagicMock()
        context = self.pick(9, ord("j"), ord("c"), choose=choose)
        self.assertIs(context.manage_action, ManageAction.CHAT)
        self.assertEqual(context.model_name, "phi3:mini")
        choose.assert_not_called()

    def test_quit_raises_cancelled(self):
        with self.assertRaises(UserCancelled):
            self.pick(ord("q"))

    def test_empty_list_fails_to_pick(self):
        self.client.list_running.return_value = []
        with self.assertRaises(EmptyResultError) as ctx:
            self.pick(ord("\n"), tabs=[Tab.MONITOR])
        self.assertEqual(ctx.exception.message, "failed to pick a model :(")

    def test_help_and_filter_render_without_terminal(self):
        context = self.pick(ord("?"), ord("?"), ord("/"), ord("m"), ord("i"), ord("\n"), ord("\n"))
        self.assertEqual(context.model_name, "mistral")


if __name__ == "__main__":
    unittest.main()
