"""Profile engine: data model, schemas, merging, identity and the store."""
