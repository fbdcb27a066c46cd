"""Application services: one sync orchestrator per catalog kind."""
