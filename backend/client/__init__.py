"""Client-side preference mirror: offline-first cache plus optimistic sync against the API."""
