"""Pure domain layer: value objects, records and the clock. Zero I/O."""
