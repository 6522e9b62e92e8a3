"""ORM Models — persistence for records written by background jobs."""
