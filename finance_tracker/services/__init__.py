"""Services package: document store, object storage, auth and mail."""
