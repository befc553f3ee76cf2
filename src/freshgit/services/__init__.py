"""Services for freshgit."""
