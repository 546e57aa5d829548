"""Storage core: package pool, published storage, downloader and helpers."""
