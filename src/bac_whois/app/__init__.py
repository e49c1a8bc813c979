"""Discovery engine: destination resolution, response roster, and the run loop."""
