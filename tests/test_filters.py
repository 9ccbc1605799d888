# test_filters.py
import os
import sys
from datetime import datetime

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from core.filters import ALL_OPTION, Debouncer, filter_by_text, filter_hymns, sort_hymns
from core.models import Hymn


def make_hymns():
    return [
        Hymn(id=1, title="beta", number="10", language="English", hymn_book_id=1, is_favorite=True,
             view_count=5, created_date=datetime(2024, 1, 3), modified_date=datetime(2024, 2, 1)),
        Hymn(id=2, title="Alpha", number="2", language="Spanish", hymn_book_id=2,
             view_count=9, created_date=datetime(2024, 1, 1), modified_date=datetime(2024, 3, 1),
             tags="navidad"),
        Hymn(id=3, title="Gamma", number=None, language="English", hymn_book_id=1,
             view_count=0, created_date=datetime(2024, 1, 2), modified_date=datetime(2024, 1, 2),
             lyrics="Santo, santo, santo"),
    ]


class TestFilterHymns:

    def test_all_means_no_filter(self):
        hymns = make_hymns()
        assert len(filter_hymns(hymns, hymn_book_id=ALL_OPTION, language=ALL_OPTION)) == 3
        assert len(filter_hymns(hymns, hymn_book_id=0, language="")) == 3
        assert len(filter_hymns(hymns)) == 3

    def test_combined_filters(self):
        hymns = make_hymns()
        assert [h.id for h in filter_hymns(hymns, hymn_book_id=1)] == [1, 3]
        assert [h.id for h in filter_hymns(hymns, language="English", favorites_only=True)] == [1]
        assert [h.id for h in filter_hymns(hymns, hymn_ids=[2, 3])] == [2, 3]
        assert filter_hymns(hymns, hymn_ids=[]) == []


class TestSortHymns:

    def test_title_case_insensitive(self):
        assert [h.title for h in sort_hymns(make_hymns())] == ["Alpha", "beta", "Gamma"]
        assert [h.title for h in sort_hymns(make_hymns(), ascending=False)] == ["Gamma", "beta", "Alpha"]

    def test_number_numeric_with_unnumbered_last(self):
        assert [h.id for h in sort_hymns(make_hymns(), "number")] == [2, 1, 3]
        assert [h.id for h in sort_hymns(make_hymns(), "number", ascending=False)] == [1, 2, 3]

    def test_dates_and_views(self):
        assert [h.id for h in sort_hymns(make_hymns(), "created")] == [2, 3, 1]
        assert [h.id for h in sort_hymns(make_hymns(), "modified", ascending=False)] == [2, 1, 3]
        assert [h.id for h in sort_hymns(make_hymns(), "views", ascending=False)] == [2, 1, 3]

    def test_unknown_key_sorts_by_title(self):
        assert [h.title for h in sort_hymns(make_hymns(), "whatever")] == ["Alpha", "beta", "Gamma"]


class TestFilterByText:

    def test_matches_any_field(self):
        hymns = make_hymns()
        assert [h.id for h in filter_by_text(hymns, "ALPHA")] == [2]
        assert [h.id for h in filter_by_text(hymns, "navidad")] == [2]
        assert [h.id for h in filter_by_text(hymns, "santo")] == [3]
        assert [h.id for h in filter_by_text(hymns, "10")] == [1]

    def test_blank_returns_everything(self):
        assert len(filter_by_text(make_hymns(), "  ")) == 3
        assert len(filter_by_text(make_hymns(), None)) == 3


class FakeWidget:
    """Imita after/after_cancel de Tk guardando los callbacks pendientes"""

    def __init__(self):
        self.pending = {}
        self.counter = 0

    def after(self, delay_ms, callback):
        self.counter += 1
        after_id = f"after#{self.counter}"
        self.pending[after_id] = (delay_ms, callback)
        return after_id

    def after_cancel(self, after_id):
        self.pending.pop(after_id, None)

    def run_pending(self):
        for after_id, (_, callback) in list(self.pending.items()):
            del self.pending[after_id]
            callback()


class TestDebouncer:

    def test_only_last_trigger_fires(self):
        widget = FakeWidget()
        calls = []
        debouncer = Debouncer(widget, 500, lambda: calls.append("search"))

        debouncer.trigger()
        debouncer.trigger()
        debouncer.trigger()
        assert len(widget.pending) == 1
        assert list(widget.pending.values())[0][0] == 500

        widget.run_pending()
        assert calls == ["search"]

    def test_cancel(self):
        widget = FakeWidget()
        calls = []
        debouncer = Debouncer(widget, 300, lambda: calls.append(1))
        debouncer.trigger()
        debouncer.cancel()
        widget.run_pending()
        assert calls == []
