"""Agent core: loop engine, tool registry, provider adapters and typed errors."""
