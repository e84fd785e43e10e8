"""Client-side draft/staging state machine and API client."""
