"""buildboot - compose build tasks into a pipeline and run external tools."""
