"""Host processes that can be launched behind a StdioContext."""
