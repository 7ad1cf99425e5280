"""Storage-side helpers: exceptions, device checks and image rotation."""
