"""
Revalidation gateway service for the product revalidation bridge.
"""

from typing import Dict, Optional

from fastapi import Header, Query, Request
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import GatewayConfig, get_gateway_config

from .domain.errors import RevalidationBadRequest, RevalidationFailed, RevalidationUnauthorized
from .domain.gateway import RevalidationGateway
from .invalidation.invalidator import PathInvalidator, RedisPathInvalidator, create_invalidator
from .tags.registry import TagRegistry, load_tag_registry


CORRELATION_HEADER = "X-Correlation-ID"


class RevalidationService(BaseService):
    """Revalidation gateway service implementation."""

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        *,
        invalidator: Optional[PathInvalidator] = None,
        registry: Optional[TagRegistry] = None,
    ):
        super().__init__(config or get_gateway_config())

        self.registry = registry or load_tag_registry(self.config.tag_registry_file)
        self.invalidator = invalidator or create_invalidator(
            self.config.invalidation_backend,
            self.config.redis_url,
        )
        self.gateway = RevalidationGateway(
            self.registry,
            self.invalidator,
            self.config.revalidate_secret,
            metrics=self.metrics,
        )

        if not self.config.revalidate_secret:
            self.logger.warning("REVALIDATE_SECRET not set; every revalidation request will be rejected")

        self._setup_revalidation_routes()
        self.app.state.revalidation_service = self

    def _setup_revalidation_routes(self):
        """Set up revalidation routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": self.service_name,
                "message": "Product Revalidation Bridge - Revalidation Gateway",
                "version": "1.0.0",
                "tags": list(self.registry.tags()),
            }

        @self.app.get("/api/revalidate")
        async def revalidate(
            request: Request,
            tags: Optional[str] = Query(None, description="Comma-separated tag list"),
            x_revalidate_secret: Optional[str] = Header(None),
            x_correlation_id: Optional[str] = Header(None),
            user_agent: Optional[str] = Header(None),
        ):
            """Revalidate every cached page mapped to the given tags."""
            try:
                result = await self.gateway.revalidate(
                    secret=x_revalidate_secret,
                    tags=tags,
                    user_agent=user_agent,
                    upstream_correlation_id=x_correlation_id,
                    correlation_id=request.state.correlation_id,
                )
            except (RevalidationUnauthorized, RevalidationBadRequest, RevalidationFailed) as exc:
                return JSONResponse(
                    status_code=exc.status_code,
                    content=exc.body(),
                    headers={CORRELATION_HEADER: exc.correlation_id},
                )

            return JSONResponse(
                content=result.to_body(),
                headers={CORRELATION_HEADER: result.correlation_id},
            )

        @self.app.get("/api/revalidate/tags")
        async def list_tags():
            """List the tag registry."""
            return {"tags": self.registry.as_dict()}

    async def _check_dependencies(self) -> Dict[str, str]:
        if isinstance(self.invalidator, RedisPathInvalidator):
            try:
                await self.invalidator.ping()
                return {"redis": "ok"}
            except Exception as exc:
                self.logger.warning("Redis health check failed", error=str(exc))
                return {"redis": "error"}
        return {}

    async def stop(self):
        if isinstance(self.invalidator, RedisPathInvalidator):
            await self.invalidator.close()
        self.logger.info("Revalidation service stopped")


def create_app(config: Optional[GatewayConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = RevalidationService(config, **kwargs)
    return service.app


if __name__ == "__main__":
    service = RevalidationService()
    service.run()
