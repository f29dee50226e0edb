"""Tests for page sequence extraction and the user-flow graph."""
from sessionlens.services.flow import build_user_flow, extract_event_page, extract_page_sequence
from tests.factories import make_record


def _nav(timestamp, url):
    return {"type": "navigation", "timestamp": timestamp, "url": url}


def _by_page(nodes):
    return {node.page: node for node in nodes}


class TestExtractPageSequence:

    def test_starts_from_metadata_url(self):
        record = make_record(
            metadata={"url": "https://shop.example.com/"},
            events=[_nav(100, "https://shop.example.com/products")],
        )
        assert extract_page_sequence(record) == ["/", "/products"]

    def test_adjacent_duplicates_are_suppressed(self):
        record = make_record(events=[
            _nav(0, "/a"),
            _nav(10, "/a/"),
            _nav(20, "/b"),
            _nav(30, "/b?tab=2"),
            _nav(40, "/a"),
        ])
        assert extract_page_sequence(record) == ["/a", "/b", "/a"]

    def test_events_walked_in_timestamp_order(self):
        record = make_record(events=[_nav(300, "/c"), _nav(100, "/a"), _nav(200, "/b")])
        assert extract_page_sequence(record) == ["/a", "/b", "/c"]

    def test_events_without_pages_are_ignored(self):
        record = make_record(events=[
            {"type": "click", "timestamp": 0, "target": "button#buy"},
            {"type": "mousemove", "timestamp": 5, "x": 1, "y": 2},
        ])
        assert extract_page_sequence(record) == []

    def test_candidate_field_priority(self):
        event = {"type": "click", "timestamp": 0, "target": "a", "href": "/pricing", "url": "/home"}
        assert extract_event_page(event) == "/home"
        assert extract_event_page({"type": "click", "location": "route:/docs"}) == "/docs"


class TestBuildUserFlow:

    def _three_sessions(self):
        return [
            make_record("s1", metadata={"url": "/home"}, events=[_nav(1, "/products"), _nav(2, "/cart")]),
            make_record("s2", metadata={"url": "/home"}, events=[_nav(1, "/products")]),
            make_record("s3", metadata={"url": "/home"}),
        ]

    def test_three_page_graph(self):
        nodes = _by_page(build_user_flow(self._three_sessions()))

        home = nodes["/home"]
        assert home.users == 3
        assert [(t.target, t.percent) for t in home.next] == [("/products", 67), ("exit", 33)]

        products = nodes["/products"]
        assert products.users == 2
        assert sorted((t.target, t.percent) for t in products.next) == [("/cart", 50), ("exit", 50)]

        cart = nodes["/cart"]
        assert cart.users == 1
        assert [(t.target, t.percent) for t in cart.next] == [("exit", 100)]

    def test_nodes_sorted_by_users(self):
        nodes = build_user_flow(self._three_sessions())
        assert [node.page for node in nodes] == ["/home", "/products", "/cart"]

    def test_percentages_roughly_conserved(self):
        for node in build_user_flow(self._three_sessions()):
            total = sum(transition.percent for transition in node.next)
            assert 100 - len(node.next) <= total <= 100 + len(node.next)

    def test_users_counted_once_per_session(self):
        record = make_record(events=[_nav(0, "/a"), _nav(1, "/b"), _nav(2, "/a"), _nav(3, "/b")])
        nodes = _by_page(build_user_flow([record]))
        assert nodes["/a"].users == 1
        assert nodes["/b"].users == 1
        assert [(t.target, t.percent) for t in nodes["/a"].next] == [("/b", 100)]
        assert sorted((t.target, t.percent) for t in nodes["/b"].next) == [("/a", 50), ("exit", 50)]

    def test_sessions_without_pages_are_skipped(self):
        assert build_user_flow([make_record(events=[{"type": "click", "timestamp": 0}])]) == []
        assert build_user_flow([]) == []

    def test_exit_is_not_a_node(self):
        nodes = build_user_flow(self._three_sessions())
        assert "exit" not in {node.page for node in nodes}
