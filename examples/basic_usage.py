"""Basic usage example for Doc-O-Link documents stored in a database record."""

from docolink.documents import Document, DocumentCollection
from docolink.logging_setup import setup_logging
from docolink.models import Record
from docolink.storage import Database


class Address(Document):
    SCHEMA = {
        "type": "object",
        "properties": {"zip": {"type": "string", "pattern": "^[0-9]{5}$"}},
    }


class Vehicle(Document):
    SCHEMA = {
        "type": "object",
        "required": ["vin"],
        "properties": {"vin": {"type": "string", "minLength": 17, "maxLength": 17}},
    }


class Person(Document):
    CASTS = {"age": "int"}
    LINKED_ATTRIBUTES = {
        "address": (Address, "address"),
        "vehicles": (Vehicle, "vehicles", None, DocumentCollection.IS_A, "vin"),
    }


def main():
    """Demonstrate linking, saving and reloading documents."""
    setup_logging()

    # Initialize database (uses SQLite by default)
    db = Database()

    # Create tables
    db.create_tables()

    with db.session() as session:
        record = Record(kind="customer", data={})
        session.add(record)

        # A document linked to the "person" key inside the record's data column
        person = Person(record, "data", "person")
        person.name = "Ada"
        person.age = "36"
        person.address.city = "London"
        person.address.zip = "12345"
        person.vehicles.push({"vin": "1HGCM82633A004352", "make": "Honda"})

        # Saving writes the whole graph into record.data and flushes the record
        person.save()
        record_id = record.id
        print(f"Saved record {record_id}: {record.data}")

    with db.session() as session:
        record = session.get(Record, record_id)
        person = Person(record, "data", "person")
        print(f"Loaded {person.name}, aged {person.age}, from {person.address.city}")

        vehicle = person.vehicles.find_or_fail("1HGCM82633A004352")
        print(f"Drives a {vehicle.make}")

        # Saving a nested document saves every host up to the record
        vehicle.make = "Acura"
        vehicle.save()
        print(f"Updated record: {record.data}")

    print("\nAll operations completed successfully!")


if __name__ == "__main__":
    main()
