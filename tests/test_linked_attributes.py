"""Tests for linked attribute declaration, hydration, assignment and cascades."""

import pytest

pytestmark = pytest.mark.unit

from docolink.documents.collection import DocumentCollection
from docolink.documents.document import Document
from docolink.documents.registry import LinkedAttributeConfig, get_registry
from docolink.exceptions import ConfigurationError, TypeMismatchError, ValidationError
from docolink.helpers.json import canonically_same
from mocks import (
    Address,
    BeyondDownstream,
    ConcreteDocument,
    Downstream,
    EventedDocument,
    EventedParent,
    FakeRoot,
    NullableDocument,
    Person,
    TreeNode,
    Upstream,
)


class WithNullable(Document):
    LINKED_ATTRIBUTES = {"maybe": (NullableDocument, "maybe")}


class TestDeclarations:
    """Tests for LINKED_ATTRIBUTES normalization."""

    def test_defaults_filled_in(self):
        """Test two element declarations get default slots."""
        config = Person.linked_attribute_config("address")
        assert config == LinkedAttributeConfig(Address, "address", None, False, None)

    def test_full_declaration(self):
        """Test five element declarations keep every slot."""
        config = LinkedAttributeConfig.from_declaration(
            ConcreteDocument, "vehicles", (Address, "data", 3, DocumentCollection.IS_A, "vin")
        )
        assert config.sub_key == "3"
        assert config.is_collection is True
        assert config.primary_key == "vin"

    def test_plain_attribute_has_no_config(self):
        """Test undeclared names resolve to None."""
        assert Person.linked_attribute_config("name") is None
        assert ConcreteDocument.linked_attribute_config("anything") is None

    def test_string_type_references(self):
        """Test class names resolve in the declaring module."""
        assert Upstream.linked_attribute_config("extra").document_type is Downstream
        assert TreeNode.linked_attribute_config("children").document_type is TreeNode

    def test_dotted_type_reference(self):
        """Test dotted paths are imported."""

        class Dotted(Document):
            LINKED_ATTRIBUTES = {"node": ("mocks.Address", "node")}

        assert Dotted.linked_attribute_config("node").document_type is Address

    def test_resolution_is_memoized(self):
        """Test a name resolves to the same config object every time."""
        first = Person.linked_attribute_config("address")
        assert Person.linked_attribute_config("address") is first
        get_registry().forget(Person)
        assert Person.linked_attribute_config("address") == first

    @pytest.mark.parametrize(
        "declaration",
        [
            (Address,),
            (Address, "a", None, False, None, "extra"),
            "Address",
            None,
        ],
    )
    def test_unusable_declaration(self, declaration):
        """Test malformed tuples raise a configuration error naming the owner."""

        class Broken(Document):
            LINKED_ATTRIBUTES = {"thing": declaration}

        with pytest.raises(ConfigurationError, match="Unusable LINKED_ATTRIBUTES in Broken for thing"):
            Broken()

    def test_non_mapping_declarations(self):
        """Test LINKED_ATTRIBUTES must be a mapping."""

        class NotAMapping(Document):
            LINKED_ATTRIBUTES = [("thing", Address, "thing")]

        with pytest.raises(ConfigurationError, match="NotAMapping must define a mapping for LINKED_ATTRIBUTES"):
            NotAMapping()

    def test_child_type_must_be_document(self):
        """Test non-document child types are rejected."""

        class WrongType(Document):
            LINKED_ATTRIBUTES = {"thing": (dict, "thing")}

        with pytest.raises(ConfigurationError, match="must name a Document subclass"):
            WrongType()

    def test_unknown_type_name(self):
        """Test unresolvable names are rejected."""

        class Unknown(Document):
            LINKED_ATTRIBUTES = {"thing": ("NoSuchDocument", "thing")}

        with pytest.raises(ConfigurationError, match="unknown type NoSuchDocument"):
            Unknown()


class TestHydration:
    """Tests for reading linked attributes."""

    def test_eager_hydration_on_construction(self):
        """Test every linked attribute is cached after construction."""
        person = Person({"name": "Ada", "address": {"city": "London"}})
        assert "address" in person._attribute_cache
        assert isinstance(person.address, Address)
        assert person.address.city == "London"

    def test_cache_stability(self):
        """Test repeated reads return the same instance."""
        person = Person(FakeRoot({"person": {"address": {"city": "London"}}}), "person")
        first = person.address
        first.city = "Paris"
        assert person.address is first
        assert person.address.city == "Paris"

    def test_child_is_linked_to_parent(self):
        """Test hydrated children link to the parent, not the root."""
        root = FakeRoot({"person": {"address": {"city": "London"}}})
        person = Person(root, "person")
        assert person.address.get_link() == (person, "address", None)
        assert person.address.exists

    def test_empty_child_is_still_an_instance(self):
        """Test the default policy never reads as None."""
        person = Person()
        assert isinstance(person.address, Address)
        assert person.address.is_empty()
        assert "address" not in person

    def test_nullable_child_reads_none_when_empty(self):
        """Test the null-when-empty policy."""
        doc = WithNullable()
        assert doc.maybe is None
        assert "maybe" not in doc._attribute_cache

    def test_nullable_child_with_data(self):
        """Test a nullable child with data behaves like any other."""
        doc = WithNullable({"maybe": {"value": 1}})
        assert isinstance(doc.maybe, NullableDocument)
        assert doc.maybe.value == 1
        assert doc.maybe is doc.maybe

    def test_nullable_child_assigned_whole(self):
        """Test nullable children are assigned as mappings."""
        root = FakeRoot()
        doc = WithNullable(root, "data")
        doc.maybe = {"message": "hold it"}
        doc.save()
        assert root.data == {"data": {"maybe": {"message": "hold it"}}}

    def test_with_linked_attributes(self):
        """Test the cache is rebuilt with exactly the requested names."""
        parent = EventedParent()
        stale = parent.first
        assert parent.with_linked_attributes(["second"]) is parent
        assert set(parent._attribute_cache) == {"second"}
        assert parent.first is not stale

    def test_with_unknown_linked_attribute(self):
        """Test only linked attributes can be eager loaded."""
        with pytest.raises(TypeMismatchError, match="name must be a linked attribute"):
            Person().with_linked_attributes(["name"])

    def test_empty_cache_falls_back_to_store(self):
        """Test clearing the cache hydrates again from stored data."""
        person = Person({"address": {"city": "London"}})
        person.address.city = "Paris"
        person.empty_linked_attribute_cache()
        assert person.address.city == "London"

    def test_self_referencing_tree(self):
        """Test recursive structures hydrate through collections."""
        tree = TreeNode({"name": "root", "children": [{"name": "leaf", "children": []}]})
        assert tree.children.first().name == "leaf"
        assert tree.children.first().children.is_empty()
        assert tree.to_dict() == {"name": "root", "children": [{"name": "leaf", "children": []}]}


class TestAssignment:
    """Tests for setting and unsetting linked attributes."""

    def test_assign_mapping(self):
        """Test mappings are coerced into the child type."""
        person = Person()
        person.address = {"city": "London"}
        assert isinstance(person.address, Address)
        assert person.address.city == "London"

    def test_assign_instance_links_it(self):
        """Test an assigned instance is linked to the parent and cached."""
        person = Person()
        address = Address({"city": "London"})
        person.address = address
        assert person.address is address
        assert address.get_link() == (person, "address", None)

    def test_assignment_writes_to_parent_not_root(self):
        """Test assignment reaches the parent's store only."""
        root = FakeRoot({"person": {"name": "Ada"}})
        person = Person(root, "person")
        person.address = {"city": "London"}
        assert person["address"] == {"city": "London"}
        assert root.data == {"person": {"name": "Ada"}}
        person.save()
        assert root.data == {"person": {"name": "Ada", "address": {"city": "London"}}}

    def test_assignment_runs_child_pre_save(self):
        """Test the child's pre-save hooks fire on assignment."""
        parent = EventedParent()
        child = EventedDocument({"a": 1})
        parent.first = child
        assert child.creating_fired == 1
        assert child.saving_fired == 1
        assert child.saved_fired == 0

    def test_assignment_validates_child(self):
        """Test an invalid child can't be assigned."""
        person = Person()
        with pytest.raises(ValidationError, match="Address contains invalid data!"):
            person.address = {"zip": "not a zip"}

    @pytest.mark.parametrize("value", ["London", 5, ["a"], ConcreteDocument()])
    def test_assign_wrong_type(self, value):
        """Test values that aren't the child type or a mapping are rejected."""
        person = Person()
        with pytest.raises(TypeMismatchError, match="address must be a Address or valid mapping"):
            person.address = value

    def test_unset_whole_attribute(self):
        """Test unsetting removes the attribute from the parent."""
        person = Person({"name": "Ada", "address": {"city": "London"}})
        del person.address
        assert "address" not in person._attribute_cache
        assert "address" not in person.to_dict()
        assert person.address.is_empty()

    def test_unset_sub_key(self):
        """Test unsetting a sub key attribute keeps its siblings."""

        class Split(Document):
            LINKED_ATTRIBUTES = {"home": (Address, "addresses", "home")}

        doc = Split({"addresses": {"home": {"city": "London"}, "work": {"city": "Paris"}}})
        del doc.home
        assert doc["addresses"] == {"work": {"city": "Paris"}}

    def test_isset(self):
        """Test existence means present and non-empty."""
        person = Person({"address": {"city": "London"}})
        assert "address" in person
        person.address.city = None
        person.address.unset_attribute("city")
        assert "address" not in person

    def test_update_with_linked_attribute(self):
        """Test update assigns linked attributes through their type."""
        root = FakeRoot()
        person = Person(root, "person")
        person.update({"name": "Ada", "address": {"city": "London"}})
        assert isinstance(person.address, Address)
        assert root.data == {"person": {"name": "Ada", "address": {"city": "London"}}}


class TestSerializationWithChildren:
    """Tests for to_dict with cached children."""

    def test_cached_child_overrides_store(self):
        """Test unsaved child edits appear in the parent's serialization."""
        person = Person({"name": "Ada", "address": {"city": "London"}})
        person.address.city = "Paris"
        assert person["address"] == {"city": "London"}
        assert person.to_dict() == {"name": "Ada", "address": {"city": "Paris"}}

    def test_empty_children_are_omitted(self):
        """Test empty children don't appear in the output."""
        assert Person({"name": "Ada"}).to_dict() == {"name": "Ada"}

    def test_empty_collections_stay_lists(self):
        """Test an empty collection child serializes as a list, not omitted."""
        parent = EventedParent()
        assert parent.is_empty()
        assert parent.to_dict() == {"things": []}

    def test_sub_key_child_overlays_its_location(self):
        """Test a cached sub key child is serialized inside its host attribute."""

        class Split(Document):
            LINKED_ATTRIBUTES = {"home": (Address, "addresses", "home")}

        doc = Split({"addresses": {"home": {"city": "London"}, "work": {"city": "Paris"}}})
        doc.home.city = "Leeds"
        assert doc.to_dict() == {"addresses": {"home": {"city": "Leeds"}, "work": {"city": "Paris"}}}

    def test_parent_with_only_empty_single_children(self):
        """Test {} when every child is empty."""
        person = Person()
        assert person.is_empty()
        assert person.to_dict() == {}
        assert person.to_json() == "{}"

    def test_non_empty_child_makes_parent_non_empty(self):
        """Test emptiness looks at children."""
        person = Person()
        person.address.city = "London"
        assert not person.is_empty()
        assert person.to_dict() == {"address": {"city": "London"}}


class TestCascade:
    """Tests for cascading hooks through children."""

    def test_nested_save(self):
        """Test a parent save carries child edits to the root."""
        root = FakeRoot()
        parent = EventedParent(root, "data")
        parent.first.field = "x"
        assert parent.save() is True
        assert root.data == {"data": {"first": {"field": "x"}, "things": []}}
        assert root.save_count == 1

    def test_hooks_fire_once_per_node(self):
        """Test parent and child creation hooks each fire once."""
        root = FakeRoot()
        parent = EventedParent(root, "data")
        parent.first.field = "x"
        parent.save()
        child = parent.first
        for node in (parent, child):
            assert node.creating_fired == 1
            assert node.saving_fired == 1
            assert node.saved_fired == 1
            assert node.created_fired == 1
            assert node.exists

    def test_child_veto_short_circuits_siblings(self):
        """Test siblings after a vetoing child get no hooks and the root isn't saved."""
        root = FakeRoot()
        parent = EventedParent(root, "data")
        first, second = parent.first, parent.second
        first.saving_returns = False
        assert parent.save() is False
        assert parent.saving_fired == 1
        assert first.saving_fired == 1
        assert second.creating_fired == 0
        assert second.saving_fired == 0
        assert parent.saved_fired == 0
        assert root.save_count == 0
        assert root.data == {}

    def test_parent_veto_skips_children(self):
        """Test parent hooks fire before descending."""
        parent = EventedParent(FakeRoot(), "data")
        parent.saving_returns = False
        assert parent.save() is False
        assert parent.first.saving_fired == 0

    def test_collection_members_cascade(self):
        """Test collection members receive hooks through the parent."""
        root = FakeRoot({"data": {"things": [{"a": 1}, {"a": 2}]}})
        parent = EventedParent(root, "data")
        parent.save()
        for thing in parent.things:
            assert thing.saving_fired == 1
            assert thing.saved_fired == 1
            assert thing.creating_fired == 0

    def test_collection_member_veto(self):
        """Test a vetoing collection member stops the parent save."""
        root = FakeRoot({"data": {"things": [{"a": 1}, {"a": 2}]}})
        parent = EventedParent(root, "data")
        parent.things.first().saving_returns = False
        assert parent.save() is False
        assert parent.things.last().saving_fired == 0
        assert root.save_count == 0

    def test_child_save_goes_through_parent(self):
        """Test saving a child writes into the parent, then the root."""
        root = FakeRoot({"person": {"name": "Ada"}})
        person = Person(root, "person")
        person.address.city = "London"
        assert person.address.save() is True
        assert root.data == {"person": {"name": "Ada", "address": {"city": "London"}}}
        assert root.save_count == 1

    def test_direct_child_save_runs_child_hooks_twice(self):
        """Test the parent cascade repeats hooks on a child saved directly."""
        root = FakeRoot({"data": {}})
        parent = EventedParent(root, "data")
        child = parent.first
        child.a = 1
        assert child.save() is True
        assert child.creating_fired == 2
        assert child.saving_fired == 2
        assert child.saved_fired == 2
        assert child.created_fired == 1
        assert child.exists
        assert parent.saving_fired == 1
        assert root.save_count == 1

    def test_invalid_child_blocks_parent_save(self):
        """Test child validation runs during the parent save."""
        root = FakeRoot()
        person = Person(root, "person")
        person.address.zip = "nope"
        with pytest.raises(ValidationError) as exc_info:
            person.save()
        assert "zip" in exc_info.value.errors
        assert root.save_count == 0

    def test_three_levels(self):
        """Test edits three levels down reach the root in one save."""
        root = FakeRoot({"data": {"downstream": {"beyond": {"deep": 1}}, "nested": {"kept": True}}})
        upstream = Upstream(root, "data")
        assert isinstance(upstream.downstream.beyond, BeyondDownstream)
        upstream.downstream.beyond.deep = 2
        upstream.extra.note = "hi"
        upstream.save()
        assert canonically_same(
            root.data,
            {
                "data": {
                    "downstream": {"beyond": {"deep": 2}},
                    "nested": {"kept": True, "extra": {"note": "hi"}},
                }
            },
        )

    def test_deep_child_save(self):
        """Test saving a grandchild walks up every level."""
        root = FakeRoot({"data": {"downstream": {"beyond": {"deep": 1}}}})
        upstream = Upstream(root, "data")
        beyond = upstream.downstream.beyond
        beyond.deep = 3
        beyond.save()
        assert root.data["data"]["downstream"]["beyond"] == {"deep": 3}
        assert beyond.get_ancestor_of_type(Upstream) is upstream


class TestDirtyLinkedAttributes:
    """Tests for is_linked_attribute_dirty."""

    def test_clean_after_load(self):
        """Test freshly loaded children are clean."""
        person = Person(FakeRoot({"person": {"address": {"city": "London"}}}), "person")
        assert not person.is_linked_attribute_dirty("address")

    def test_dirty_after_child_edit(self):
        """Test unsaved child edits are dirty until saved."""
        person = Person(FakeRoot({"person": {"address": {"city": "London"}}}), "person")
        person.address.city = "Paris"
        assert person.is_linked_attribute_dirty("address")
        person.save()
        assert not person.is_linked_attribute_dirty("address")

    def test_key_order_does_not_matter(self):
        """Test the comparison is canonical."""
        person = Person(FakeRoot({"person": {"address": {"city": "London", "street": "1 Main"}}}), "person")
        person.address.fresh()
        person.address.street = "1 Main"
        assert not person.is_linked_attribute_dirty("address")

    def test_empty_child_is_clean(self):
        """Test an empty child over missing data is clean."""
        person = Person(FakeRoot(), "person")
        assert not person.is_linked_attribute_dirty("address")

    def test_new_child_is_dirty(self):
        """Test a child with data the parent never had is dirty."""
        person = Person(FakeRoot(), "person")
        person.address.city = "London"
        assert person.is_linked_attribute_dirty("address")

    def test_only_linked_attributes(self):
        """Test plain attributes are rejected."""
        with pytest.raises(TypeMismatchError):
            Person().is_linked_attribute_dirty("name")
