"""CDN cache invalidation."""

from abc import ABC, abstractmethod
from typing import List

import boto3
from botocore.exceptions import BotoCoreError, ClientError, WaiterError
from rich.console import Console

from ..errors import InvalidationError
from ..models import InvalidationAck

console = Console()

ALL_PATHS: List[str] = ["/*"]


class CacheInvalidator(ABC):
    """Invalidate every cached path of a distribution."""

    @abstractmethod
    def invalidate(self, distribution_id: str, caller_reference: str) -> InvalidationAck:
        """
        Invalidate all paths of a distribution.

        Args:
            distribution_id: Distribution to invalidate
            caller_reference: Unique per build; repeating it is a no-op at the provider

        Raises:
            InvalidationError: If the provider rejects or fails the request
        """
        pass


class CloudFrontInvalidator(CacheInvalidator):
    """CloudFront implementation of the invalidator."""

    def __init__(self, client=None, wait: bool = False) -> None:
        self._cloudfront = client or boto3.client("cloudfront")
        self.wait = wait

    def invalidate(self, distribution_id: str, caller_reference: str) -> InvalidationAck:
        try:
            response = self._cloudfront.create_invalidation(
                DistributionId=distribution_id,
                InvalidationBatch={
                    "Paths": {"Quantity": len(ALL_PATHS), "Items": list(ALL_PATHS)},
                    "CallerReference": caller_reference,
                },
            )
            invalidation = response["Invalidation"]

            if self.wait:
                waiter = self._cloudfront.get_waiter("invalidation_completed")
                waiter.wait(DistributionId=distribution_id, Id=invalidation["Id"])
                invalidation = dict(invalidation, Status="Completed")
        except (ClientError, BotoCoreError, WaiterError) as e:
            raise InvalidationError(f"CloudFront invalidation of {distribution_id} failed: {e}") from e
        except KeyError as e:
            raise InvalidationError(f"Unexpected CloudFront response: missing {e}") from e

        console.print(
            f"[green]✓[/green] Invalidated {distribution_id} "
            f"({invalidation['Id']}, {invalidation.get('Status', 'InProgress')})"
        )
        return InvalidationAck(
            distribution_id=distribution_id,
            invalidation_id=invalidation["Id"],
            paths=list(ALL_PATHS),
            status=invalidation.get("Status", "InProgress"),
        )


class NullInvalidator(CacheInvalidator):
    """Acknowledges without calling a provider, for sites served without a CDN."""

    def invalidate(self, distribution_id: str, caller_reference: str) -> InvalidationAck:
        console.print(f"[dim]No CDN configured; skipping invalidation of {distribution_id}[/dim]")
        return InvalidationAck(
            distribution_id=distribution_id,
            invalidation_id=caller_reference,
            paths=list(ALL_PATHS),
            status="Skipped",
        )


def create_invalidator(provider: str, wait: bool = False) -> CacheInvalidator:
    """Build the invalidator for a configured provider."""
    if provider == "cloudfront":
        return CloudFrontInvalidator(wait=wait)
    return NullInvalidator()
