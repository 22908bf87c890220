"""Core services: analysis cache, session store and subprocess plumbing."""
