# Command line maintenance scripts (data migration, session resets).
