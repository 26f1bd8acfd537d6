"""Derivative job orchestration: one artwork payload in, derivative products out.

State machine per artwork (tags on the artwork are the durable record):

    UNSEEN --(tag DerivativesProcessing)--> PROCESSING --(sweep ok)--> GENERATED

A job that raises leaves DerivativesProcessing in place (FAILED) and is
retried by the queue. Re-runs are safe: each definition is skipped when a
product with its title already exists.

Processing order is the definition table order; collections are attached
in the order each definition declares them. No parallelism within a job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Sequence

from PIL import Image

from mockup_forge.catalog.definitions import DERIVATIVE_DEFINITIONS
from mockup_forge.catalog.gateway import CatalogGateway
from mockup_forge.compositor import load_artwork, render_mockup_b64
from mockup_forge.config import Settings
from mockup_forge.deadline import JobDeadline
from mockup_forge.errors import (
    DerivativeGenerationError,
    InvalidPayloadError,
    MissingArtworkImageError,
    TemplateError,
)
from mockup_forge.locks import ArtworkClaimStore, ProcessLocks
from mockup_forge.models import ArtworkEvent, DerivativeDefinition
from mockup_forge.products import build_derivative_product, derivative_title
from mockup_forge.state import (
    TAG_GENERATED,
    TAG_PROCESSING,
    ProcessingState,
    parse_tags,
    state_of,
)

logger = logging.getLogger(__name__)


class OutcomeStatus(str, Enum):
    GENERATED = "generated"
    SKIPPED_LOCKED = "skipped_locked"    # Same artwork in flight in this process
    SKIPPED_TAGGED = "skipped_tagged"    # Already processing / generated
    SKIPPED_CLAIMED = "skipped_claimed"  # Claimed by another worker process


@dataclass
class CreatedDerivative:
    definition: str
    title: str
    product_id: str


@dataclass
class ProcessingOutcome:
    """What one job did for one artwork."""

    artwork_id: str
    status: OutcomeStatus
    created: list[CreatedDerivative] = field(default_factory=list)
    existing: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


def color_of(option: str) -> str:
    """Colour group of a variant option such as ``"Bleu Marine - L"``."""
    return option.split(" - ", 1)[0].strip()


class DerivativeOrchestrator:
    """Runs the derivative workflow for one artwork payload at a time."""

    def __init__(
        self,
        gateway: CatalogGateway,
        settings: Settings,
        *,
        definitions: Sequence[DerivativeDefinition] = DERIVATIVE_DEFINITIONS,
        locks: ProcessLocks | None = None,
        claims: ArtworkClaimStore | None = None,
    ) -> None:
        self._gateway = gateway
        self._settings = settings
        self._definitions = tuple(definitions)
        self._locks = locks or ProcessLocks()
        self._claims = claims

    def process(self, payload: dict[str, Any]) -> ProcessingOutcome:
        """Process one queued artwork payload.

        Returns an outcome for completed runs and for skips; raises for
        failures, which the worker turns into a queue retry.
        """
        if payload.get("id") is None:
            raise InvalidPayloadError("Payload has no product id")
        artwork_id = str(payload["id"])

        # 1. Process-local lock
        if not self._locks.acquire(artwork_id):
            logger.info("Artwork %s already in progress in this process", artwork_id)
            return ProcessingOutcome(artwork_id, OutcomeStatus.SKIPPED_LOCKED)

        claim_token: str | None = None
        try:
            # 2. Source image is mandatory
            artwork = ArtworkEvent.from_payload(payload)
            if not artwork.image_url:
                raise MissingArtworkImageError(f"Artwork {artwork_id} has no image")

            # 3. Tag-based state check
            tags = parse_tags(artwork.tags)
            state = state_of(tags)
            if state is not ProcessingState.UNSEEN:
                logger.info("Artwork %s is already %s, skipping", artwork_id, state.value)
                return ProcessingOutcome(artwork_id, OutcomeStatus.SKIPPED_TAGGED)

            if self._claims is not None:
                claim_token = self._claims.acquire(artwork_id)
                if claim_token is None:
                    return ProcessingOutcome(artwork_id, OutcomeStatus.SKIPPED_CLAIMED)

            deadline = JobDeadline(self._settings.job_timeout_seconds)
            with self._gateway.use_deadline(deadline):
                tags = self._gateway.update_tags(artwork_id, tags, TAG_PROCESSING)

                outcome = ProcessingOutcome(artwork_id, OutcomeStatus.GENERATED)
                self._generate(artwork, deadline, outcome)

                if outcome.failed:
                    raise DerivativeGenerationError(artwork_id, outcome.failed)

                self._gateway.update_tags(
                    artwork_id, tags, TAG_GENERATED, remove=(TAG_PROCESSING,)
                )

            logger.info(
                "JOB_AUDIT artwork=%s status=%s created=%d existing=%d elapsed=%.1fs",
                artwork_id,
                outcome.status.value,
                len(outcome.created),
                len(outcome.existing),
                deadline.elapsed,
            )
            return outcome
        finally:
            if claim_token is not None and self._claims is not None:
                self._claims.release(artwork_id, claim_token)
            self._locks.release(artwork_id)

    # ── Sweep ────────────────────────────────────────────────────────────

    def _generate(
        self, artwork: ArtworkEvent, deadline: JobDeadline, outcome: ProcessingOutcome
    ) -> None:
        # 4. Download and decode once, shared read-only by every definition
        source = load_artwork(self._gateway.download_image(artwork.image_url or ""))
        collection_ids: dict[str, str | None] = {}

        # 5. Definitions in table order
        for definition in self._definitions:
            deadline.check(f"derivative '{definition.name}'")
            title = derivative_title(artwork.title, definition.name)

            if self._gateway.product_exists(artwork.title, definition.name):
                logger.info("Product '%s' already exists, skipping", title)
                outcome.existing.append(title)
                continue

            try:
                image_b64 = render_mockup_b64(
                    source, self._template_path(definition.template), definition.placement
                )
                color_images = self._render_color_images(source, definition)
            except TemplateError as exc:
                logger.error("Skipping '%s': %s", title, exc.message)
                outcome.failed[definition.name] = exc.message
                continue

            product = build_derivative_product(
                artwork, definition, image_b64, vendor=self._settings.derivative_vendor
            )
            created = self._gateway.create_product(product)
            product_id = str(created["id"])
            outcome.created.append(CreatedDerivative(definition.name, title, product_id))

            self._attach_collections(product_id, definition.collections, collection_ids)
            if color_images:
                self._attach_color_images(product_id, created, color_images)

    def _template_path(self, template: str) -> Path:
        return Path(self._settings.templates_dir) / template

    def _render_color_images(
        self, source: Image.Image, definition: DerivativeDefinition
    ) -> list[tuple[str, str]]:
        return [
            (
                ct.color,
                render_mockup_b64(source, self._template_path(ct.template), definition.placement),
            )
            for ct in definition.color_templates
        ]

    def _attach_collections(
        self,
        product_id: str,
        names: Sequence[str],
        cache: dict[str, str | None],
    ) -> None:
        for name in names:
            if name not in cache:
                cache[name] = self._gateway.find_collection_id_by_name(name)
            collection_id = cache[name]
            if collection_id is None:
                logger.error("Collection '%s' not found, product %s not added", name, product_id)
                continue
            self._gateway.add_product_to_collection(product_id, collection_id)

    def _attach_color_images(
        self,
        product_id: str,
        created: dict[str, Any],
        color_images: list[tuple[str, str]],
    ) -> None:
        variants = created.get("variants") or []
        for color, image_b64 in color_images:
            variant_ids = [
                v["id"] for v in variants if color_of(v.get("option1") or "") == color
            ]
            if not variant_ids:
                logger.info("No variant for colour '%s' on product %s", color, product_id)
                continue
            self._gateway.attach_variant_image(product_id, variant_ids, image_b64)
