"""Remote row-store access: URL handling, envelope decoding, fetcher and client."""
