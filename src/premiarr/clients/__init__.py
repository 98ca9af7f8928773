"""HTTP clients for Rotten Tomatoes, Jellyseerr and Telegram."""
