"""
Repository content proxy service package.

The proxy fronts the GitHub REST API for repository content listings and
issue creation:
- Caching: byte-bounded LRU of responses, revalidated with ETags
- Rate limiting: one retry on quota exhaustion, none on abuse signals
- Notifications: throttling events reported to a Discord webhook

Structure:
- app.main: FastAPI app, routes, and service wiring.
- app.adapters: GitHub client, upstream shapes, Discord notifier.
- app.caching: Response store and conditional fetcher.
- app.ratelimit: Retrying upstream client.
- app.domain: Content service, error translation, bug reports.
"""
