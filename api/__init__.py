"""api/ -- FastAPI application and the JSON endpoints. Knows nothing about web/."""
