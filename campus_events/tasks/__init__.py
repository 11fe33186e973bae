"""Background tasks for the Campus Events engine."""
