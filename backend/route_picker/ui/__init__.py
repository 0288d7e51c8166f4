"""Server-side UI components."""
