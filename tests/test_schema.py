"""Tests for model descriptors, relationship classification and ModelRegistry."""

import pytest

from footprints import (
    AttributeDescriptor,
    InvalidAssociationError,
    ModelDescriptor,
    ModelRegistry,
    Plural,
    SchemaRegistry,
    Singular,
    UnknownAttributeError,
    UnknownModelError,
)


class TestAttributeDescriptor:
    def test_shorthand_type(self):
        attr = AttributeDescriptor.from_dict("title", "string")
        assert attr.type == "string"
        assert not attr.is_relationship

    def test_collection_is_plural(self):
        attr = AttributeDescriptor.from_dict("books", {"collection": "Book", "via": "authorId"})
        assert attr.relationship("Author") == Plural(target="Book", via="authorId")

    def test_model_is_singular(self):
        attr = AttributeDescriptor.from_dict("profile", {"model": "Profile"})
        assert attr.relationship("Author") == Singular(target="Profile")

    def test_collection_without_via(self):
        attr = AttributeDescriptor.from_dict("books", {"collection": "Book"})
        with pytest.raises(InvalidAssociationError) as exc:
            attr.relationship("Author")
        assert exc.value.model_name == "Author"
        assert exc.value.attribute == "books"

    def test_plain_attribute_is_not_a_relationship(self):
        attr = AttributeDescriptor.from_dict("name", {"type": "string"})
        with pytest.raises(InvalidAssociationError):
            attr.relationship("Author")

    def test_model_and_collection_are_exclusive(self):
        with pytest.raises(ValueError):
            AttributeDescriptor("x", model="A", collection="B", via="c")


class TestModelDescriptor:
    def test_default_primary_key(self):
        assert ModelDescriptor.from_dict({"name": "Book"}).primary_key == "id"

    @pytest.mark.parametrize("key", ["primaryKey", "primary_key"])
    def test_primary_key_spellings(self, key):
        model = ModelDescriptor.from_dict({"name": "Profile", key: "handle"})
        assert model.primary_key == "handle"

    def test_unknown_attribute(self, registry):
        with pytest.raises(UnknownAttributeError) as exc:
            registry.get("Author").attribute("awards")
        assert exc.value.context.model == "Author"
        assert exc.value.context.attribute == "awards"

    def test_relationships_skip_plain_attributes(self, registry):
        relationships = registry.get("Author").relationships()
        assert set(relationships) == {"books", "profile"}
        assert isinstance(relationships["books"], Plural)
        assert isinstance(relationships["profile"], Singular)

    def test_relationship_matches_by_kind(self, registry):
        match registry.get("Book").relationship("authorId"):
            case Singular(target=target):
                assert target == "Author"
            case _:
                pytest.fail("authorId should be a singular reference")


class TestModelRegistry:
    def test_get(self, registry):
        assert registry.get("Profile").primary_key == "handle"

    def test_unknown_model(self, registry):
        with pytest.raises(UnknownModelError) as exc:
            registry.get("Publisher")
        assert exc.value.model_name == "Publisher"

    def test_names_and_len(self, registry):
        assert registry.names() == ["Author", "Book", "Profile"]
        assert len(registry) == 3
        assert "Book" in registry
        assert "Publisher" not in registry

    def test_register_replaces(self):
        registry = ModelRegistry([{"name": "Book"}])
        registry.register(ModelDescriptor(name="Book", primary_key="isbn"))
        assert registry.get("Book").primary_key == "isbn"
        assert len(registry) == 1

    def test_satisfies_protocol(self, registry):
        assert isinstance(registry, SchemaRegistry)
