"""Tests for the in-memory repository back-end and its query syntax."""

from __future__ import annotations

import pytest

from asset_mirror.errors import (
    InvalidQueryError,
    ItemExistsError,
    ItemNotFoundError,
    RepositoryError,
)
from asset_mirror.repository import MemoryRepository, RepositorySession
from asset_mirror.repository.xpath import (
    build_descendant_query,
    decode_segment,
    encode_path,
    encode_segment,
    parse_query,
)


@pytest.fixture
def seeded():
    repo = MemoryRepository()
    session = repo.login()
    session.add_node("/", "content", "hippostd:folder")
    session.add_node("/content", "a", "hippostd:folder")
    session.add_node("/content/a", "b", "hippostd:folder")
    session.save()
    return repo


class TestSessionIsolation:
    def test_protocol_conformance(self, seeded):
        assert isinstance(seeded.login(), RepositorySession)

    def test_unsaved_writes_invisible_to_other_sessions(self, seeded):
        writer = seeded.login()
        reader = seeded.login()
        writer.add_node("/content", "new", "hippostd:folder")

        assert writer.node_exists("/content/new")
        assert not reader.node_exists("/content/new")

    def test_save_publishes(self, seeded):
        writer = seeded.login()
        writer.add_node("/content", "new", "hippostd:folder")
        writer.save()

        assert seeded.login().node_exists("/content/new")
        assert seeded.commits == 2

    def test_refresh_discards(self, seeded):
        session = seeded.login()
        session.add_node("/content", "new", "hippostd:folder")
        assert session.has_pending_changes()

        session.refresh(False)

        assert not session.node_exists("/content/new")
        assert not session.has_pending_changes()

    def test_save_without_changes_is_not_a_commit(self, seeded):
        session = seeded.login()
        session.save()
        assert seeded.commits == 1


class TestNodes:
    def test_identifier_stable_across_move(self, seeded):
        session = seeded.login()
        before = session.get_node("/content/a/b")
        session.move("/content/a/b", "/content/b2")

        after = session.get_node_by_identifier(before.identifier)
        assert after.path == "/content/b2"
        assert after.name == "b2"
        assert after.parent_path == "/content"

    def test_move_onto_existing_sibling_fails(self, seeded):
        session = seeded.login()
        session.add_node("/content/a", "c", "hippostd:folder")
        with pytest.raises(ItemExistsError):
            session.move("/content/a/b", "/content/a/c")

    def test_move_below_itself_fails(self, seeded):
        session = seeded.login()
        with pytest.raises(RepositoryError):
            session.move("/content/a", "/content/a/b/a")

    def test_missing_node(self, seeded):
        session = seeded.login()
        with pytest.raises(ItemNotFoundError):
            session.get_node("/content/missing")
        with pytest.raises(ItemNotFoundError):
            session.get_node_by_identifier("nope")

    def test_same_name_siblings_are_indexed(self, seeded):
        session = seeded.login()
        first = session.add_node("/content/a", "t", "hippo:translation")
        second = session.add_node("/content/a", "t", "hippo:translation")

        assert first.path == "/content/a/t"
        assert second.path == "/content/a/t[2]"
        assert session.get_node("/content/a/t[2]").identifier == second.identifier
        assert len(session.get_children("/content/a", "t")) == 2

    def test_remove_reindexes_siblings(self, seeded):
        session = seeded.login()
        session.add_node("/content/a", "t", "hippo:translation")
        second = session.add_node("/content/a", "t", "hippo:translation")
        session.remove_node("/content/a/t")

        assert session.get_node_by_identifier(second.identifier).path == "/content/a/t"

    def test_mixins_and_properties(self, seeded):
        session = seeded.login()
        session.add_mixin("/content/a", "mix:referenceable")
        session.set_property("/content/a", "tags", ["x", "y"])
        node = session.get_node("/content/a")

        assert node.is_node_type("mix:referenceable")
        assert node.is_node_type("hippostd:folder")
        assert node.properties["tags"] == ["x", "y"]
        assert node.get_string("tags") == "x"

    def test_write_counter(self, seeded):
        session = seeded.login()
        session.add_node("/content", "x", "hippostd:folder")
        session.set_property("/content/x", "p", "v")
        assert session.writes == 2


class TestQuery:
    def _links(self, seeded):
        session = seeded.login()
        for i, ref in enumerate(["id-1", "cafe", None]):
            link = session.add_node("/content/a/b", f"link{i}", "hippo:facetselect")
            if ref is not None:
                session.set_property(link.path, "hippo:docbase", ref)
        session.add_node("/content", "outside", "hippo:facetselect")
        session.set_property("/content/outside", "hippo:docbase", "id-2")
        return session

    def test_scoped_descendants_with_predicate(self, seeded):
        session = self._links(seeded)
        statement = build_descendant_query(
            "/content/a", "hippo:facetselect", "hippo:docbase", "cafe"
        )
        result = session.query(statement)
        assert [n.get_string("hippo:docbase") for n in result] == ["id-1"]

    def test_property_presence_only(self, seeded):
        session = self._links(seeded)
        statement = build_descendant_query("/content/a", "hippo:facetselect", "hippo:docbase")
        assert len(session.query(statement)) == 2

    def test_missing_scope_returns_nothing(self, seeded, caplog):
        session = seeded.login()
        statement = build_descendant_query("/nowhere", "hippo:facetselect")
        assert session.query(statement) == []
        assert "Query scope /nowhere does not exist" in caplog.text

    def test_query_below_emoji_folder(self, seeded):
        session = seeded.login()
        session.add_node("/content/a", "news-\U0001F600", "hippostd:folder")
        session.add_node("/content/a/news-\U0001F600", "link", "hippo:facetselect")
        statement = build_descendant_query(
            "/content/a/news-\U0001F600", "hippo:facetselect"
        )
        assert [n.name for n in session.query(statement)] == ["link"]

    def test_invalid_statement(self, seeded):
        with pytest.raises(InvalidQueryError):
            seeded.login().query("SELECT * FROM nodes")


class TestIso9075:
    def test_leading_digit_encoded(self):
        assert encode_segment("2024") == "_x0032_024"

    def test_space_encoded(self):
        assert encode_segment("my folder") == "my_x0020_folder"

    def test_plain_names_untouched(self):
        assert encode_segment("hello-world") == "hello-world"
        assert encode_segment("hippo:handle") == "hippo:handle"

    @pytest.mark.parametrize(
        "name", ["2024", "my folder", "a_x0020_b", "plain", "news-\U0001F600"]
    )
    def test_decode_inverts_encode(self, name):
        assert decode_segment(encode_segment(name)) == name

    def test_encoded_scope_parses_back(self):
        statement = build_descendant_query("/content/2024/my docs", "x:link")
        assert encode_path("/content/2024") == "/content/_x0032_024"
        assert parse_query(statement).scope == "/content/2024/my docs"

    def test_supplementary_character_uses_surrogate_pair(self):
        assert encode_segment("\U0001F600") == "_xd83d__xde00_"
        assert decode_segment("_xD83D__xDE00_") == "\U0001F600"

    def test_emoji_scope_parses_back(self):
        path = "/content/documents/news-\U0001F600/doc"
        assert parse_query(build_descendant_query(path, "x:link")).scope == path
