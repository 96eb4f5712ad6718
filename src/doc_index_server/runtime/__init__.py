"""Runtime helpers shared by the application entry points."""
