"""GitHub REST access and the todo workflow built on top of it."""
