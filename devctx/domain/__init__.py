"""Domain Layer: value objects, records and the interfaces collaborators implement."""
