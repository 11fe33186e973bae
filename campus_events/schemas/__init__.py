"""Request and response schemas for the Campus Events API."""
