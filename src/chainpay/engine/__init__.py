"""Engine — service registry, ORM models and repositories."""
