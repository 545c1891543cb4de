"""VidTube API: registration, session lifecycle and profile endpoints."""
