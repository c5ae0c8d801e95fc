"""Client module - service API client, token providers, share pipeline and CLI."""
