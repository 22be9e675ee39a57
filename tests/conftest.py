from coinlink.testing.fixtures import manual_clock, memory_app  # noqa: F401
