"""Account-scoped content repositories and the configuration registry."""
