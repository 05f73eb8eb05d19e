"""web/ -- Server-rendered admin console. Knows nothing about api/."""
