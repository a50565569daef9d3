VERSION = "0.1.0"

# Bumped whenever the on-disk layout of shelf.yml changes.
APP_SCHEMA_VERSION = "1.0.0"
