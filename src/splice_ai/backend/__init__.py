"""AI backends implementing the session protocol (ports.Backend)."""
