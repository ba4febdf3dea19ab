"""HTTP routers. Each module exposes `router` for server.create_app()."""
