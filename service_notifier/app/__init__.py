"""
Product Event Notifier Service package (commerce side).

Listens for product mutation events on the event bus and notifies the
storefront's revalidation gateway so stale product pages are regenerated.

- app.main: FastAPI app (health, metrics) and consumer wiring
- app.events: Typed product mutation events
- app.kafka: Event bus consumer
- app.adapters: HTTP client for the revalidation gateway
- app.subscribers: Product revalidation subscriber
"""
