"""OpenAI-compatible chat-completion gateway for a JWT-authenticated backend."""
