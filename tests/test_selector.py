import curses
import unittest
from datetime import datetime, timezone

from keybindings import ESC
from model_types import CatalogEntry, InstalledModel, ManageAction, ModelDetails, RunningModel, Tab
from selector import (
    FilterState,
    ModelList,
    ModelSelector,
    Outcome,
    compute_layout,
    detail_lines,
    fuzzy_match,
)

ENTER = ord("\n")
TAB = 9


def catalog_entries():
    return [
        CatalogEntry(name="llama3", desc="Meta Llama 3", pulls="6.1M", tag_count="68", updated="5 months ago"),
        CatalogEntry(name="mistral", desc="Mistral 7B", pulls="4M", tag_count="84", updated="3 weeks ago"),
        CatalogEntry(name="llava", desc="Vision model", pulls="1M", tag_count="98", updated="2 months ago"),
    ]


def installed_models():
    return [
        InstalledModel(name="llama3:latest", digest="sha256:abc", size=4_700_000_000),
        InstalledModel(name="phi3:mini", digest="sha256:def", size=2_300_000_000),
    ]


def make_selector(tabs=(Tab.INSTALL, Tab.MANAGE, Tab.MONITOR), approved=tuple(ManageAction), lists=None):
    if lists is None:
        lists = {
            Tab.INSTALL: ModelList("install", catalog_entries()),
            Tab.MANAGE: ModelList("manage", installed_models()),
            Tab.MONITOR: ModelList("monitor", []),
        }
    return ModelSelector(list(tabs), lists, approved)


class FuzzyMatchTests(unittest.TestCase):
    def test_matches_subsequence_case_insensitively(self):
        self.assertTrue(fuzzy_match("LM", "llama3"))
        self.assertTrue(fuzzy_match("la3", "llama3"))
        self.assertFalse(fuzzy_match("3l", "llama3"))

    def test_empty_pattern_matches_everything(self):
        self.assertTrue(fuzzy_match("", "anything"))


class ModelListTests(unittest.TestCase):
    def setUp(self):
        self.model_list = ModelList("install", catalog_entries())

    def type_text(self, text):
        for ch in text:
            self.model_list.handle_key(ord(ch))

    def test_navigation_is_clamped(self):
        self.model_list.handle_key(curses.KEY_UP)
        self.assertEqual(self.model_list.cursor, 0)
        self.model_list.handle_key(ord("G"))
        self.assertEqual(self.model_list.selected_item().name, "llava")
        self.model_list.handle_key(ord("j"))
        self.assertEqual(self.model_list.cursor, 2)
        self.model_list.handle_key(ord("g"))
        self.assertEqual(self.model_list.selected_item().name, "llama3")

    def test_filter_keeps_catalog_order(self):
        self.model_list.handle_key(ord("/"))
        self.type_text("la")
        self.assertTrue(self.model_list.filtering)
        self.assertEqual([m.name for m in self.model_list.visible_items()], ["llama3", "llava"])

        self.model_list.handle_key(ENTER)
        self.assertIs(self.model_list.filter_state, FilterState.APPLIED)
        self.assertEqual(len(self.model_list.visible_items()), 2)

    def test_backspace_edits_filter(self):
        self.model_list.handle_key(ord("/"))
        self.type_text("mx")
        self.assertEqual(self.model_list.visible_items(), [])
        self.assertIsNone(self.model_list.selected_item())
        self.model_list.handle_key(curses.KEY_BACKSPACE)
        self.assertEqual(self.model_list.filter_text, "m")
        self.assertEqual(self.model_list.selected_item().name, "llama3")

    def test_escape_while_typing_clears_filter(self):
        self.model_list.handle_key(ord("/"))
        self.type_text("mis")
        self.model_list.handle_key(ESC)
        self.assertIs(self.model_list.filter_state, FilterState.UNFILTERED)
        self.assertEqual(len(self.model_list.visible_items()), 3)

    def test_enter_with_empty_filter_leaves_list_unfiltered(self):
        self.model_list.handle_key(ord("/"))
        self.model_list.handle_key(ENTER)
        self.assertIs(self.model_list.filter_state, FilterState.UNFILTERED)

    def test_paging_moves_by_visible_rows(self):
        model_list = ModelList("many", [CatalogEntry(name=f"model-{i}") for i in range(30)])
        model_list.set_size(60, 17)
        per_page = model_list.per_page()
        self.assertEqual(per_page, 4)
        model_list.handle_key(curses.KEY_NPAGE)
        self.assertEqual(model_list.cursor, per_page)
        model_list.handle_key(ord("l"))
        self.assertEqual(model_list.cursor, 2 * per_page)
        self.assertGreater(model_list.offset, 0)
        model_list.handle_key(ord("h"))
        self.assertEqual(model_list.cursor, per_page)


class SelectorTransitionTests(unittest.TestCase):
    def test_initial_state(self):
        selector = make_selector(tabs=(Tab.MANAGE, Tab.INSTALL))
        self.assertIs(selector.current_tab, Tab.MANAGE)
        self.assertFalse(selector.help_visible)
        self.assertIs(selector.outcome, Outcome.RUNNING)
        self.assertTrue(selector.selection().is_empty)

    def test_tab_switch_clamps_at_both_ends(self):
        selector = make_selector()
        selector.handle_key(curses.KEY_BTAB)
        self.assertEqual(selector.active_tab, 0)
        for _ in range(5):
            selector.handle_key(TAB)
        self.assertEqual(selector.active_tab, 2)
        selector.handle_key(ord("p"))
        self.assertEqual(selector.active_tab, 1)

    def test_enter_commits_highlighted_item(self):
        selector = make_selector()
        selector.handle_key(ord("j"))
        self.assertIs(selector.handle_key(ENTER), Outcome.COMMITTED)
        context = selector.selection()
        self.assertIs(context.action, Tab.INSTALL)
        self.assertEqual(context.installable.name, "mistral")
        self.assertIsNone(context.installed)
        self.assertIsNone(context.manage_action)

    def test_quit_keys_cancel(self):
        for key in (ord("q"), 3, ESC):
            selector = make_selector()
            self.assertIs(selector.handle_key(key), Outcome.CANCELLED)
            self.assertTrue(selector.selection().is_empty)

    def test_keys_after_termination_are_ignored(self):
        selector = make_selector()
        selector.handle_key(ord("q"))
        selector.handle_key(TAB)
        selector.handle_key(ENTER)
        self.assertIs(selector.outcome, Outcome.CANCELLED)
        self.assertEqual(selector.active_tab, 0)

    def test_help_overlay_suppresses_other_input(self):
        selector = make_selector()
        selector.handle_key(ord("?"))
        self.assertTrue(selector.help_visible)
        selector.handle_key(ord("j"))
        selector.handle_key(TAB)
        selector.handle_key(ENTER)
        self.assertIs(selector.outcome, Outcome.RUNNING)
        self.assertEqual(selector.active_tab, 0)
        self.assertEqual(selector.active_list.cursor, 0)
        selector.handle_key(ord("?"))
        self.assertFalse(selector.help_visible)

    def test_help_overlay_still_honours_quit(self):
        selector = make_selector()
        selector.handle_key(ord("?"))
        self.assertIs(selector.handle_key(ord("q")), Outcome.CANCELLED)

    def test_filtering_list_owns_keystrokes(self):
        selector = make_selector()
        selector.handle_key(ord("/"))
        for key in (ord("q"), TAB, ord("n"), ord("?")):
            selector.handle_key(key)
        self.assertIs(selector.outcome, Outcome.RUNNING)
        self.assertEqual(selector.active_tab, 0)
        self.assertFalse(selector.help_visible)
        self.assertEqual(selector.active_list.filter_text, "qn?")

    def test_escape_clears_applied_filter_before_quitting(self):
        selector = make_selector()
        for key in (ord("/"), ord("m"), ENTER):
            selector.handle_key(key)
        self.assertIs(selector.active_list.filter_state, FilterState.APPLIED)
        selector.handle_key(ESC)
        self.assertIs(selector.outcome, Outcome.RUNNING)
        self.assertIs(selector.active_list.filter_state, FilterState.UNFILTERED)
        self.assertIs(selector.handle_key(ESC), Outcome.CANCELLED)

    def test_commit_on_empty_list_yields_empty_selection(self):
        selector = make_selector(tabs=(Tab.MONITOR,))
        self.assertIs(selector.handle_key(ENTER), Outcome.COMMITTED)
        context = selector.selection()
        self.assertIs(context.action, Tab.MONITOR)
        self.assertTrue(context.is_empty)


class ShortcutTests(unittest.TestCase):
    def test_unapproved_shortcut_is_a_no_op(self):
        selector = make_selector(approved=(ManageAction.DELETE,))
        selector.handle_key(TAB)
        self.assertIs(selector.current_tab, Tab.MANAGE)
        for key in (ord("u"), ord("c")):
            self.assertIs(selector.handle_key(key), Outcome.RUNNING)
        self.assertIsNone(selector.action)
        self.assertIsNone(selector.manage_action)
        self.assertEqual(selector.active_tab, 1)
        self.assertEqual(selector.active_list.cursor, 0)

    def test_approved_shortcut_commits_with_action(self):
        selector = make_selector(approved=(ManageAction.DELETE, ManageAction.UPDATE))
        selector.handle_key(TAB)
        selector.handle_key(ord("j"))
        self.assertIs(selector.handle_key(ord("d")), Outcome.COMMITTED)
        context = selector.selection()
        self.assertIs(context.action, Tab.MANAGE)
        self.assertIs(context.manage_action, ManageAction.DELETE)
        self.assertEqual(context.model_name, "phi3:mini")

    def test_shortcut_outside_manage_tab_is_ignored(self):
        selector = make_selector()
        self.assertIs(selector.handle_key(ord("d")), Outcome.RUNNING)
        self.assertIsNone(selector.manage_action)


class LayoutTests(unittest.TestCase):
    def test_resize_below_threshold_hides_detail_pane(self):
        selector = make_selector()
        wide = selector.resize(120, 40)
        self.assertTrue(wide.detail_visible)
        self.assertEqual(wide.list_width, 70)
        self.assertEqual(wide.list_width + wide.detail_width, 118)

        narrow = selector.resize(80, 40)
        self.assertFalse(narrow.detail_visible)
        self.assertEqual(narrow.list_width, 78)
        self.assertEqual(narrow.detail_width, 0)
        self.assertEqual(selector.active_list.width, 78)

        restored = selector.resize(120, 40)
        self.assertTrue(restored.detail_visible)
        self.assertEqual(restored.list_width, 70)
        self.assertEqual(selector.active_list.width, 70)

    def test_threshold_is_exclusive(self):
        self.assertFalse(compute_layout(92, 30, 3).detail_visible)
        self.assertTrue(compute_layout(93, 30, 3).detail_visible)

    def test_single_tab_omits_tab_row_and_tab_help(self):
        selector = make_selector(tabs=(Tab.INSTALL,))
        layout = selector.resize(120, 40)
        self.assertEqual(layout.tab_row_height, 0)
        keys = [key for key, _ in selector.help_entries()]
        self.assertNotIn("n/tab", keys)
        self.assertNotIn("p/shift+tab", keys)

        multi = make_selector()
        self.assertGreater(multi.resize(120, 40).tab_row_height, 0)
        self.assertIn("n/tab", [key for key, _ in multi.help_entries()])

    def test_help_lists_approved_shortcuts_on_manage_tab(self):
        selector = make_selector(approved=(ManageAction.CHAT,))
        self.assertNotIn(("c", "Chat"), selector.help_entries())
        selector.handle_key(TAB)
        entries = selector.help_entries()
        self.assertIn(("c", "Chat"), entries)
        self.assertNotIn(("d", "Delete"), entries)


class DetailLinesTests(unittest.TestCase):
    def texts(self, lines):
        return [text for text, _ in lines]

    def test_installable_details(self):
        entry = CatalogEntry(
            name="llama3",
            desc="Meta Llama 3",
            pulls="6.1M",
            tag_count="68",
            updated="5 months ago",
            labels=("tools", "8b"),
        )
        texts = self.texts(detail_lines(entry, 60))
        self.assertIn(" llama3 ", texts)
        self.assertIn("5 months ago", texts)
        self.assertIn("Meta Llama 3", texts)
        self.assertIn("6.1M Pulls • 68 Tags", texts)
        self.assertTrue(any("tools" in t and "8b" in t for t in texts))

    def test_installed_multimodal_model_gets_vision_badge(self):
        model = InstalledModel(
            name="llava:7b",
            digest="sha256:123",
            details=ModelDetails(format="gguf", quantization_level="Q4_0", families=("llama", "clip")),
        )
        lines = detail_lines(model, 60)
        badges = [text for text, style in lines if style == "badge"]
        self.assertEqual(len(badges), 1)
        self.assertIn("vision", badges[0])
        self.assertIn("Q4_0", badges[0])

    def test_running_details_show_memory_split(self):
        model = RunningModel(
            name="llama3:latest",
            size=100,
            size_vram=25,
            expires_at=datetime(2100, 1, 1, tzinfo=timezone.utc),
        )
        texts = self.texts(detail_lines(model, 80))
        self.assertIn("Total Size 100 B | GPU 25.00% | CPU 75.00%", texts)
        self.assertTrue(any(t.strip().startswith("Expires") for t in texts))

    def test_running_model_with_zero_size(self):
        texts = self.texts(detail_lines(RunningModel(name="tiny"), 80))
        self.assertIn("Total Size 0 B | GPU 0.00% | CPU 0.00%", texts)

    def test_missing_item_mentions_filter(self):
        self.assertEqual(detail_lines(None, 40, "xyz"), [('"xyz" not found', "dim")])
        self.assertEqual(detail_lines(None, 40), [("Nothing to show", "dim")])


if __name__ == "__main__":
    unittest.main()
