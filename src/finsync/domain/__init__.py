"""Pure domain logic: recurrence arithmetic, finance rules and repository ports."""
