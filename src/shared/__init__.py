"""Cross-context building blocks: domain events and the event bus."""
