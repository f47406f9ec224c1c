"""Maps AI provider answers onto a program's evaluation criteria.

Providers score by criterion *name*; storage keys scores by criterion *id*.
Criteria the provider skipped (or scored out of range) fall back to 0 and
are reported in ``unmatched_criteria`` so a manager can fill them in.
"""

import logging
from typing import Optional, Sequence

from ..models.evaluation import (
    AIEvaluationRequest,
    AIEvaluationResponse,
    AIScoringResult,
    CriterionBrief,
    ProgramContext,
    ProjectSummary,
)
from ..models.form import field_text, is_blank
from ..models.program import EvaluationCriterion
from ..models.project import Project, ProjectStatus
from ..scorer.engine import compute_total, criterion_band, recommend_status
from .base import ScoringProvider

logger = logging.getLogger(__name__)

AI_COMMENT_PREFIX = "[AI]"

BAND_COMMENTS = {
    "strong": "Strong performance on this criterion.",
    "medium": "Satisfactory level with room for improvement.",
    "weak": "Below expectations; significant improvements needed.",
    "very_weak": "Insufficient; major gaps identified.",
}


def _normalize(name: str) -> str:
    return " ".join(name.lower().split())


class AIScoringAdapter:
    """Runs one project through a scoring provider and returns id-keyed results."""

    def __init__(self, provider: ScoringProvider):
        self.provider = provider

    def build_request(
        self,
        project: Project,
        criteria: Sequence[EvaluationCriterion],
        context: Optional[ProgramContext] = None,
        custom_prompt: Optional[str] = None,
    ) -> AIEvaluationRequest:
        form_answers = {
            name: field_text(value)
            for name, value in project.form_data.items()
            if not is_blank(value)
        }
        return AIEvaluationRequest(
            project_data=ProjectSummary(
                title=project.title,
                description=project.description,
                budget=project.budget,
                timeline=project.timeline,
                tags=project.tags,
                submission_date=project.submission_date,
                form_data=form_answers,
            ),
            evaluation_criteria=[
                CriterionBrief(
                    id=c.id,
                    name=c.name,
                    description=c.description,
                    max_score=c.max_score,
                    weight=c.weight,
                )
                for c in criteria
            ],
            custom_prompt=custom_prompt,
            program_context=context,
        )

    async def evaluate_project(
        self,
        project: Project,
        criteria: Sequence[EvaluationCriterion],
        context: Optional[ProgramContext] = None,
        custom_prompt: Optional[str] = None,
    ) -> AIScoringResult:
        """Score a project with the configured provider.

        Raises:
            ProviderError: the provider failed or answered garbage
        """
        request = self.build_request(project, criteria, context, custom_prompt)
        response = await self.provider.evaluate(request)
        result = self.map_response(response, criteria)

        logger.info(
            "ai_scoring project=%s total=%d recommendation=%s unmatched=%d",
            project.id,
            result.total_score,
            result.recommendation.value,
            len(result.unmatched_criteria),
        )
        return result

    def map_response(
        self,
        response: AIEvaluationResponse,
        criteria: Sequence[EvaluationCriterion],
    ) -> AIScoringResult:
        by_name = response.scores
        by_normalized = {_normalize(name): score for name, score in response.scores.items()}
        observations = (
            response.detailed_analysis.observations if response.detailed_analysis else {}
        )

        scores = {}
        comments = {}
        unmatched = []

        for criterion in criteria:
            score = by_name.get(criterion.name)
            if score is None:
                score = by_normalized.get(_normalize(criterion.name))

            if score is None or not 0 <= score <= criterion.max_score:
                if score is not None:
                    logger.warning(
                        "Provider score %s for '%s' outside [0, %s]; ignoring",
                        score, criterion.name, criterion.max_score,
                    )
                scores[criterion.id] = 0.0
                comments[criterion.id] = (
                    f"{AI_COMMENT_PREFIX} Not scored by the provider; defaulted to 0."
                )
                unmatched.append(criterion.id)
                continue

            scores[criterion.id] = float(score)
            comment = (
                f"{AI_COMMENT_PREFIX} {BAND_COMMENTS[criterion_band(score, criterion.max_score)]} "
                f"({score:g}/{criterion.max_score:g})"
            )
            observation = observations.get(criterion.name)
            if observation:
                comment = f"{comment} {observation}"
            comments[criterion.id] = comment

        total = compute_total(scores, criteria)
        if response.recommendation:
            recommendation = ProjectStatus(response.recommendation)
        else:
            recommendation = recommend_status(total)

        return AIScoringResult(
            scores=scores,
            comments=comments,
            notes=response.notes,
            recommendation=recommendation,
            total_score=total,
            unmatched_criteria=unmatched,
            detailed_analysis=response.detailed_analysis,
        )
