"""Append-only store of completed evaluations"""

import json
import logging
from typing import Any, Dict, Optional

from data.db_wrapper import get_db
from schemas.domain import ComponentScores, Evaluation
from utils.periods import to_datetime

logger = logging.getLogger(__name__)


class EvaluationRepository:

    def __init__(self, db=None):
        self.db = db or get_db()

    def persist(self, evaluation: Evaluation) -> str:
        """Insert one evaluation row and return its id"""
        self.db.execute_write(
            """
            INSERT INTO evaluations (
                id, platform, ad_source_type, media_type, landing_page_url,
                overall_score, visual_score, contextual_score, tone_score,
                analysis_mode, analysis_json, used_ai, fallback_reason,
                requester_key, created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                evaluation.id,
                evaluation.platform.value,
                evaluation.ad_source_type.value,
                evaluation.media_type.value,
                evaluation.landing_page_url,
                evaluation.overall_score,
                evaluation.component_scores.visual_match,
                evaluation.component_scores.contextual_match,
                evaluation.component_scores.tone_alignment,
                evaluation.analysis_mode.value,
                json.dumps(evaluation.analysis),
                evaluation.used_ai,
                evaluation.fallback_reason,
                evaluation.requester_key,
                evaluation.created_at.isoformat(),
            ),
        )
        logger.info(f"💾 Stored evaluation {evaluation.id} (used_ai={evaluation.used_ai})")
        return evaluation.id

    def get(self, evaluation_id: str) -> Optional[Evaluation]:
        row = self.db.execute_query("SELECT * FROM evaluations WHERE id = %s", (evaluation_id,))
        return self._to_evaluation(row) if row else None

    @staticmethod
    def _to_evaluation(row: Dict[str, Any]) -> Evaluation:
        return Evaluation(
            id=row["id"],
            platform=row["platform"],
            ad_source_type=row["ad_source_type"],
            media_type=row["media_type"],
            landing_page_url=row["landing_page_url"],
            overall_score=row["overall_score"],
            component_scores=ComponentScores(
                visual_match=row["visual_score"],
                contextual_match=row["contextual_score"],
                tone_alignment=row["tone_score"],
            ),
            analysis_mode=row["analysis_mode"],
            analysis=json.loads(row["analysis_json"]),
            used_ai=bool(row["used_ai"]),
            fallback_reason=row.get("fallback_reason"),
            requester_key=row.get("requester_key"),
            created_at=to_datetime(row["created_at"]),
        )
