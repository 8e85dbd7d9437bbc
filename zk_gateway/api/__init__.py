"""FastAPI application exposing tool execution, jobs and live job events."""
