"""AI assistant: OpenAI-compatible client and the task advisor."""
