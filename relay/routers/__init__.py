"""HTTP routers exposed by the relay (local status API only)."""
