from mdchunk.core.config import Settings


def get_test_settings() -> Settings:
    """Returns a Settings instance for testing (64 / 32 budget)."""
    return Settings.for_testing()


def strip_header(chunk: str, header: str) -> str:
    """Drop the injected *header* line from *chunk*."""
    prefix = header + "\n"
    return chunk[len(prefix):] if chunk.startswith(prefix) else chunk
