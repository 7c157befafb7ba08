"""Tests for footprints.associations.AssociationResolver."""

from __future__ import annotations

import pytest

from conftest import RecordingStore
from footprints import (
    AssociationResolver,
    FootprintService,
    InMemoryStore,
    InvalidAssociationError,
    ModelRegistry,
    UnknownAttributeError,
    UnknownModelError,
)


@pytest.fixture
def recorded(recording: RecordingStore, registry: ModelRegistry) -> AssociationResolver:
    return AssociationResolver(FootprintService(recording, registry))


class TestResolve:
    def test_plural(self, resolver: AssociationResolver) -> None:
        parent, relationship, child = resolver.resolve("Author", "books")
        assert parent.name == "Author"
        assert relationship.target == "Book"
        assert relationship.via == "authorId"
        assert child.name == "Book"

    def test_singular(self, resolver: AssociationResolver) -> None:
        _, relationship, child = resolver.resolve("Author", "profile")
        assert not hasattr(relationship, "via")
        assert child.primary_key == "handle"

    def test_unknown_parent(self, resolver: AssociationResolver) -> None:
        with pytest.raises(UnknownModelError):
            resolver.resolve("Publisher", "books")

    def test_unknown_attribute(self, resolver: AssociationResolver) -> None:
        with pytest.raises(UnknownAttributeError) as exc:
            resolver.resolve("Author", "awards")
        assert exc.value.attribute == "awards"

    def test_plain_attribute_is_not_a_relationship(self, resolver: AssociationResolver) -> None:
        with pytest.raises(InvalidAssociationError):
            resolver.resolve("Author", "name")

    def test_unknown_target_model(self) -> None:
        registry = ModelRegistry(
            [{"name": "Author", "attributes": {"books": {"collection": "Book", "via": "authorId"}}}]
        )
        resolver = AssociationResolver(FootprintService(None, registry))
        with pytest.raises(UnknownModelError) as exc:
            resolver.resolve("Author", "books")
        assert exc.value.model_name == "Book"


class TestCreateAssociation:
    @pytest.mark.asyncio
    async def test_injects_foreign_key(self, resolver: AssociationResolver, library) -> None:
        book = await resolver.create_association("Author", 7, "books", {"title": "X"})
        assert book["title"] == "X"
        assert book["authorId"] == 7

        stored = await library.find_one("Book", book["id"]).execute()
        assert stored["authorId"] == 7

    @pytest.mark.asyncio
    async def test_injected_foreign_key_wins(self, resolver: AssociationResolver, library) -> None:
        book = await resolver.create_association(
            "Author", 7, "books", {"title": "X", "authorId": 8}
        )
        assert book["authorId"] == 7

    @pytest.mark.asyncio
    async def test_caller_values_not_mutated(self, resolver: AssociationResolver, library) -> None:
        values = {"title": "X"}
        await resolver.create_association("Author", 7, "books", values)
        assert values == {"title": "X"}

    @pytest.mark.asyncio
    async def test_many(self, resolver: AssociationResolver, library) -> None:
        books = await resolver.create_association(
            "Author", 8, "books", [{"title": "Dune Messiah"}, {"title": "Children of Dune"}]
        )
        assert [b["authorId"] for b in books] == [8, 8]

    @pytest.mark.asyncio
    async def test_singular_reference_rejected_before_store_call(
        self, recorded: AssociationResolver, recording: RecordingStore
    ) -> None:
        with pytest.raises(InvalidAssociationError) as exc:
            await recorded.create_association("Author", 7, "profile", {"bio": "x"})
        assert exc.value.attribute == "profile"
        assert recording.calls == []

    @pytest.mark.asyncio
    async def test_unknown_attribute_before_store_call(
        self, recorded: AssociationResolver, recording: RecordingStore
    ) -> None:
        with pytest.raises(UnknownAttributeError):
            await recorded.create_association("Author", 7, "awards", {"title": "x"})
        assert recording.calls == []


class TestFindAssociationPlural:
    @pytest.mark.asyncio
    async def test_scalar_child_id(self, resolver: AssociationResolver, library) -> None:
        book = await resolver.find_association("Author", 7, "books", 3)
        assert book["id"] == 3
        assert book["authorId"] == 7

    @pytest.mark.asyncio
    async def test_scalar_child_of_other_parent_is_none(
        self, resolver: AssociationResolver, library
    ) -> None:
        assert await resolver.find_association("Author", 7, "books", 4) is None

    @pytest.mark.asyncio
    async def test_scalar_is_find_one_on_child(
        self, recorded: AssociationResolver, recording: RecordingStore
    ) -> None:
        await recorded.find_association("Author", 7, "books", 3)
        assert recording.calls == [("find_one", "Book", {"id": 3, "authorId": 7})]

    @pytest.mark.asyncio
    async def test_structured_criteria_scoped_to_parent(
        self, resolver: AssociationResolver, library
    ) -> None:
        books = await resolver.find_association("Author", 7, "books", {"year": {">": 1968}})
        assert sorted(b["id"] for b in books) == [2, 3]

    @pytest.mark.asyncio
    async def test_no_criteria_returns_all_children(
        self, resolver: AssociationResolver, library
    ) -> None:
        books = await resolver.find_association("Author", 8, "books")
        assert [b["title"] for b in books] == ["Dune"]

    @pytest.mark.asyncio
    async def test_foreign_key_filter_wins_over_caller(
        self, resolver: AssociationResolver, library
    ) -> None:
        books = await resolver.find_association("Author", 7, "books", {"authorId": 8})
        assert {b["authorId"] for b in books} == {7}

    @pytest.mark.asyncio
    async def test_foreign_key_filter_wins_over_where_clause(
        self, resolver: AssociationResolver, library
    ) -> None:
        books = await resolver.find_association("Author", 7, "books", {"where": {"authorId": 8}})
        assert [b["id"] for b in books] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_where_clause_filters_within_parent(
        self, resolver: AssociationResolver, library
    ) -> None:
        books = await resolver.find_association("Author", 7, "books", {"where": {"year": 1974}})
        assert [b["id"] for b in books] == [3]

    @pytest.mark.asyncio
    async def test_caller_criteria_not_mutated(self, resolver: AssociationResolver, library) -> None:
        criteria = {"year": 1969}
        await resolver.find_association("Author", 7, "books", criteria)
        assert criteria == {"year": 1969}


class TestFindAssociationSingular:
    @pytest.mark.asyncio
    async def test_returns_populated_value(self, resolver: AssociationResolver, library) -> None:
        profile = await resolver.find_association("Author", 7, "profile", {})
        assert profile == {"handle": "ursula", "bio": "Earthsea"}

    @pytest.mark.asyncio
    async def test_goes_through_parent(
        self, recorded: AssociationResolver, recording: RecordingStore
    ) -> None:
        await recorded.find_association("Author", 7, "profile")
        assert recording.calls == [("find_one", "Author", 7)]

    @pytest.mark.asyncio
    async def test_criteria_filter_the_populated_record(
        self, resolver: AssociationResolver, library
    ) -> None:
        assert await resolver.find_association("Author", 7, "profile", {"bio": "Dune"}) is None

    @pytest.mark.asyncio
    async def test_scalar_criteria_matches_child_primary_key(
        self, resolver: AssociationResolver, library
    ) -> None:
        profile = await resolver.find_association("Author", 7, "profile", "ursula")
        assert profile["handle"] == "ursula"
        assert await resolver.find_association("Author", 7, "profile", "someone") is None

    @pytest.mark.asyncio
    async def test_unlinked_reference(self, resolver: AssociationResolver, library) -> None:
        assert await resolver.find_association("Author", 8, "profile") is None

    @pytest.mark.asyncio
    async def test_missing_parent(self, resolver: AssociationResolver, library) -> None:
        assert await resolver.find_association("Author", 99, "profile") is None


class TestUpdateAssociationPlural:
    @pytest.mark.asyncio
    async def test_scalar_child_id_returns_record(
        self, resolver: AssociationResolver, library
    ) -> None:
        book = await resolver.update_association("Author", 7, "books", 2, {"year": 1970})
        assert book["id"] == 2
        assert book["year"] == 1970

    @pytest.mark.asyncio
    async def test_scalar_child_of_other_parent_untouched(
        self, resolver: AssociationResolver, library
    ) -> None:
        assert await resolver.update_association("Author", 7, "books", 4, {"year": 2000}) is None
        dune = await library.find_one("Book", 4).execute()
        assert dune["year"] == 1965

    @pytest.mark.asyncio
    async def test_structured_updates_only_parents_children(
        self, resolver: AssociationResolver, library
    ) -> None:
        books = await resolver.update_association("Author", 8, "books", {}, {"title": "Renamed"})
        assert [b["id"] for b in books] == [4]
        others = await library.find("Book", {"authorId": 7}).execute()
        assert "Renamed" not in {b["title"] for b in others}

    @pytest.mark.asyncio
    async def test_where_clause_cannot_reach_other_parent(
        self, resolver: AssociationResolver, library
    ) -> None:
        books = await resolver.update_association(
            "Author", 7, "books", {"where": {"authorId": 8}}, {"title": "Renamed"}
        )
        assert sorted(b["id"] for b in books) == [1, 2, 3]
        dune = await library.find_one("Book", 4).execute()
        assert dune["title"] == "Dune"


class TestUpdateAssociationSingular:
    @pytest.mark.asyncio
    async def test_relinks_and_returns_new_child(
        self, resolver: AssociationResolver, library
    ) -> None:
        await library.create("Profile", {"handle": "frank", "bio": "Arrakis"})

        profile = await resolver.update_association("Author", 8, "profile", None, "frank")
        assert profile == {"handle": "frank", "bio": "Arrakis"}

        author = await library.find_one("Author", 8).execute()
        assert author["profile"] == "frank"

    @pytest.mark.asyncio
    async def test_record_reference_is_stored_by_key(
        self, resolver: AssociationResolver, library
    ) -> None:
        profile = await resolver.update_association(
            "Author", 8, "profile", None, {"handle": "ursula"}
        )
        assert profile["handle"] == "ursula"

    @pytest.mark.asyncio
    async def test_two_store_calls(
        self, recorded: AssociationResolver, recording: RecordingStore
    ) -> None:
        await recorded.update_association("Author", 8, "profile", None, "ursula")
        assert recording.calls == [
            ("update", "Author", 8),
            ("find_one", "Profile", "ursula"),
        ]

    @pytest.mark.asyncio
    async def test_missing_parent(self, resolver: AssociationResolver, library) -> None:
        assert await resolver.update_association("Author", 99, "profile", None, "ursula") is None

    @pytest.mark.asyncio
    async def test_unlinking_returns_none(self, resolver: AssociationResolver, library) -> None:
        assert await resolver.update_association("Author", 7, "profile", None, None) is None


class TestDestroyAssociation:
    @pytest.mark.asyncio
    async def test_destroys_child(self, resolver: AssociationResolver, library) -> None:
        book = await resolver.destroy_association("Author", 7, "books", 1)
        assert book["id"] == 1
        assert await library.find_one("Book", 1).execute() is None

    @pytest.mark.asyncio
    async def test_does_not_check_ownership(self, resolver: AssociationResolver, library) -> None:
        # Book 4 belongs to author 8; the child is resolved by id alone.
        book = await resolver.destroy_association("Author", 7, "books", 4)
        assert book["authorId"] == 8
        assert await library.find_one("Book", 4).execute() is None

    @pytest.mark.asyncio
    async def test_missing_child(self, resolver: AssociationResolver, library) -> None:
        assert await resolver.destroy_association("Author", 7, "books", 99) is None

    @pytest.mark.asyncio
    async def test_singular_destroys_target_by_id(
        self, resolver: AssociationResolver, library
    ) -> None:
        profile = await resolver.destroy_association("Author", 7, "profile", "ursula")
        assert profile["handle"] == "ursula"

    @pytest.mark.asyncio
    async def test_single_store_call_on_child(
        self, recorded: AssociationResolver, recording: RecordingStore
    ) -> None:
        await recorded.destroy_association("Author", 7, "books", 2)
        assert recording.calls == [("destroy", "Book", 2)]

    @pytest.mark.asyncio
    async def test_collection_without_via(self) -> None:
        registry = ModelRegistry(
            [
                {"name": "Author", "attributes": {"tags": {"collection": "Tag"}}},
                {"name": "Tag", "attributes": {"label": "string"}},
            ]
        )
        store = InMemoryStore(registry)
        await store.create("Tag", {"id": 1, "label": "sf"})
        resolver = AssociationResolver(FootprintService(store, registry))

        tag = await resolver.destroy_association("Author", 7, "tags", 1)
        assert tag == {"id": 1, "label": "sf"}
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_plain_attribute_rejected(
        self, recorded: AssociationResolver, recording: RecordingStore
    ) -> None:
        with pytest.raises(InvalidAssociationError):
            await recorded.destroy_association("Author", 7, "name", 1)
        assert recording.calls == []
