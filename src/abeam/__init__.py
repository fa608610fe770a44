"""AB-EAM backend core: storage, migrations, entities and repositories."""

__version__ = "1.0.0"
