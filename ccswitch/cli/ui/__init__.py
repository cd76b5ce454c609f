"""Terminal prompts and rendering."""
