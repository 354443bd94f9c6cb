"""Business logic services; routers stay thin and call into these."""
