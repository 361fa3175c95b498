"""Space Odyssey relay — control-packet websocket relay and game API."""
