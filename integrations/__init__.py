"""External collaborators consumed by the automation core."""
