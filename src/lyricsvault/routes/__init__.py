"""HTTP routers for the LyricsVault API."""
