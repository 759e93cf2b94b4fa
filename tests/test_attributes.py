"""Tests for the typed attribute store and casts."""

from datetime import date, datetime, timedelta, timezone

import pytest

pytestmark = pytest.mark.unit

from docolink.documents.attributes import AttributeStore, CastsAttributes
from docolink.exceptions import TypeMismatchError


class UpperCase(CastsAttributes):
    """Stores text upper-cased and reads it back lower-cased."""

    def get(self, key, value):
        return value.lower()

    def set(self, key, value):
        return str(value).upper()


class TestCasts:
    """Tests for built-in and custom casts."""

    def test_int_and_float(self):
        """Test numeric casts convert text."""
        store = AttributeStore({"count": "int", "price": "float"})
        store.set("count", "42")
        store.set("price", "9.5")
        assert store.get("count") == 42
        assert store.get("price") == 9.5

    def test_uncastable_raises(self):
        """Test garbage raises a type mismatch naming the field."""
        store = AttributeStore({"count": "integer"})
        with pytest.raises(TypeMismatchError) as exc_info:
            store.set("count", "many")
        assert exc_info.value.field == "count"

    def test_bool_from_text(self):
        """Test common boolean spellings."""
        store = AttributeStore({"flag": "bool"})
        store.set("flag", "yes")
        assert store.get("flag") is True
        store.set("flag", "0")
        assert store.get("flag") is False
        store.set("flag", 1)
        assert store.get("flag") is True
        with pytest.raises(TypeMismatchError):
            store.set("flag", "perhaps")

    def test_string(self):
        """Test values become text."""
        store = AttributeStore({"code": "string"})
        store.set("code", 123)
        assert store.get("code") == "123"

    def test_datetime_stored_as_iso_text(self):
        """Test datetimes are stored as ISO-8601 and read back aware."""
        store = AttributeStore({"at": "datetime"})
        store.set("at", "2021-03-04T05:06:07Z")
        assert store.get_raw("at") == "2021-03-04T05:06:07+00:00"
        assert store.get("at") == datetime(2021, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
        assert store.to_dict() == {"at": "2021-03-04T05:06:07+00:00"}

    def test_naive_datetime_is_utc(self):
        """Test naive datetimes are treated as UTC."""
        store = AttributeStore({"at": "datetime"})
        store.set("at", datetime(2021, 3, 4, 5, 6, 7))
        assert store.get("at").tzinfo is not None
        assert store.get("at").utcoffset() == timedelta(0)

    def test_datetime_keeps_offset(self):
        """Test an explicit offset survives."""
        store = AttributeStore({"at": "datetime"})
        store.set("at", "2021-03-04T05:06:07+02:00")
        assert store.get("at").utcoffset() == timedelta(hours=2)

    def test_bad_datetime_raises(self):
        """Test unparseable text raises."""
        store = AttributeStore({"at": "datetime"})
        with pytest.raises(TypeMismatchError):
            store.set("at", "yesterday-ish")
        with pytest.raises(TypeMismatchError):
            store.set("at", 12.5)

    def test_date(self):
        """Test date casts."""
        store = AttributeStore({"day": "date"})
        store.set("day", "2021-03-04T23:00:00")
        assert store.get_raw("day") == "2021-03-04"
        assert store.get("day") == date(2021, 3, 4)

    def test_json_cast_deep_copies(self):
        """Test dict casts don't alias the caller's value."""
        store = AttributeStore({"meta": "json"})
        source = {"tags": ["a"]}
        store.set("meta", source)
        source["tags"].append("b")
        assert store.get("meta") == {"tags": ["a"]}

    def test_none_is_never_cast(self):
        """Test None passes through every cast."""
        store = AttributeStore({"count": "int", "at": "datetime"})
        store.set("count", None)
        store.set("at", None)
        assert store.get("count") is None
        assert store.get("at") is None
        assert store.has("count")

    def test_custom_cast_class(self):
        """Test a CastsAttributes subclass is instantiated and used."""
        store = AttributeStore({"code": UpperCase})
        store.set("code", "abc")
        assert store.get_raw("code") == "ABC"
        assert store.get("code") == "abc"

    def test_custom_cast_instance(self):
        """Test a CastsAttributes instance is used as is."""
        store = AttributeStore({"code": UpperCase()})
        store.set("code", "xyz")
        assert store.get_raw("code") == "XYZ"

    def test_unknown_cast_raises(self):
        """Test an unknown cast name raises on use."""
        store = AttributeStore({"thing": "complex"})
        with pytest.raises(TypeMismatchError):
            store.set("thing", 1)

    def test_uncast_values_pass_through(self):
        """Test attributes without casts are stored as given."""
        store = AttributeStore()
        store.set("anything", [1, "two"])
        assert store.get("anything") == [1, "two"]
        assert store.get("missing", "default") == "default"


class TestDirtyTracking:
    """Tests for original snapshots."""

    def test_everything_dirty_before_sync(self):
        """Test new attributes are dirty until synced."""
        store = AttributeStore()
        store.set("a", 1)
        assert store.is_dirty()
        assert store.get_dirty() == {"a": 1}
        store.sync_original()
        assert not store.is_dirty()
        assert store.get_original("a") == 1

    def test_changed_and_removed_keys(self):
        """Test changes and removals are reported per key."""
        store = AttributeStore()
        store.set("a", 1)
        store.set("b", 2)
        store.sync_original()
        store.set("a", 10)
        store.forget("b")
        assert store.get_dirty() == {"a": 10}
        assert store.is_dirty("a")
        assert store.is_dirty("b")
        assert not store.is_dirty("c")

    def test_original_is_a_snapshot(self):
        """Test nested changes don't leak into the snapshot."""
        store = AttributeStore()
        store.set("meta", {"x": 1})
        store.sync_original()
        store.get("meta")["x"] = 2
        assert store.original == {"meta": {"x": 1}}
        assert store.is_dirty("meta")

    def test_clear_and_len(self):
        """Test clearing empties the store but keeps the snapshot."""
        store = AttributeStore()
        store.set("a", 1)
        store.sync_original()
        store.clear()
        assert len(store) == 0
        assert "a" not in store
        assert store.is_dirty("a")
        assert store.keys() == []
