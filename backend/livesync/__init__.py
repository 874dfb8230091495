"""Live-game reconciliation: match external fixtures to in-flight games and apply safe updates."""
