"""
Declaration emitter: writes the signed report as a canonical JSON document
through the artifact store. Rendering the printable PDF happens downstream
from this document.
"""

from fiscal_review.emitters.base import (
    EmittedArtifact,
    EmitterError,
    FinalizationBundle,
    FinalizationEmitter,
)
from fiscal_review.models.tables import utcnow
from fiscal_review.review.diligence import diligence_counts
from fiscal_review.review.progress import aggregate_summary
from fiscal_review.schemas.declaration import (
    DeclarationEntry,
    DeclarationReview,
    DeclarationSignature,
    FinalDeclaration,
)
from fiscal_review.storage.artifact_store import ArtifactStore
from fiscal_review.storage.paths import content_hash, final_report_path


def _iso(value) -> str:
    return value.isoformat() if value is not None else ""


def _signature_block(signature, role: str) -> DeclarationSignature:
    return DeclarationSignature(
        user_id=signature.user_id,
        display_name=signature.display_name,
        role=role,
        signed_at=_iso(signature.created_at),
        signature_image=signature.signature_image,
    )


def build_declaration(bundle: FinalizationBundle, generated_at) -> FinalDeclaration:
    """Assemble the declaration document from a finalization bundle."""
    report = bundle.report
    reviews_by_tx: dict = {}
    for review in sorted(bundle.reviews, key=lambda r: r.user_id):
        reviews_by_tx.setdefault(review.transaction_id, []).append(review)

    entries = []
    for tx in sorted(bundle.transactions, key=lambda t: t.entry_index):
        info = bundle.diligences.get(tx.transaction_id)
        entries.append(
            DeclarationEntry(
                transaction_id=str(tx.transaction_id),
                entry_index=tx.entry_index,
                posted_date=tx.posted_date.isoformat(),
                description=tx.description,
                amount=tx.amount,
                direction=tx.direction,
                reviews=[
                    DeclarationReview(
                        user_id=r.user_id,
                        status=r.status,
                        observation=r.observation,
                        diligence_ack=r.diligence_ack,
                    )
                    for r in reviews_by_tx.get(tx.transaction_id, [])
                ],
                is_diligence=bool(info and info.is_diligence),
                diligence_reason=info.reason if info else None,
                diligence_opened_by=info.opened_by if info else None,
                diligence_opened_at=_iso(info.opened_at) if info and info.opened_at else None,
                diligence_ack_count=info.ack_count if info else 0,
            )
        )

    summary = aggregate_summary(report, bundle.reviews, bundle.fiscal_signatures)
    diligence_total, confirmed = diligence_counts(bundle.diligences)

    return FinalDeclaration(
        report_id=str(report.report_id),
        title=report.title,
        competence_period=report.competence_period,
        account_type=report.account_type,
        total_entries=report.total_entries,
        approved_transactions=summary.approved_transactions,
        diligence_count=diligence_total,
        confirmed_diligences=confirmed,
        generated_at=_iso(generated_at),
        entries=entries,
        fiscal_signatures=[
            _signature_block(s, "fiscal")
            for s in sorted(bundle.fiscal_signatures, key=lambda s: s.user_id)
        ],
        treasurer_signature=_signature_block(bundle.treasurer_signature, "treasurer"),
    )


class DeclarationEmitter(FinalizationEmitter):
    """Stores the final declaration as JSON in the artifact store."""

    def __init__(self, store: ArtifactStore):
        self.store = store

    @property
    def emitter_name(self) -> str:
        return "declaration_json"

    async def emit(self, bundle: FinalizationBundle) -> EmittedArtifact:
        generated_at = utcnow()
        try:
            document = build_declaration(bundle, generated_at)
            payload = document.model_dump_json(indent=2).encode("utf-8")
        except (ValueError, TypeError, AttributeError) as e:
            raise EmitterError(self.emitter_name, "RENDER_FAILED", str(e))

        path = final_report_path(
            str(bundle.report.report_id), bundle.report.competence_period, generated_at
        )
        try:
            self.store.save_bytes(path, payload)
        except OSError as e:
            raise EmitterError(self.emitter_name, "STORAGE_FAILED", str(e))

        return EmittedArtifact(
            url=self.store.public_url(path),
            path=path,
            sha256=content_hash(payload),
            size_bytes=len(payload),
            content_type="application/json",
        )

    async def discard(self, artifact: EmittedArtifact) -> None:
        self.store.delete(artifact.path)
