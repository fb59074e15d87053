"""Business logic layer. Routers call services; services own transactions."""
