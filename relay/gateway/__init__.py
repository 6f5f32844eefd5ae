"""Matrix side of the relay: inbound filtering and the mautrix client adapter."""
