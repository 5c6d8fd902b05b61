"""HTTP routes: session login/logout, project sync and health checks."""
