"""LLM prompt templates for AI-assisted project evaluation.

The provider is asked to:
1. Score each evaluation criterion between 0 and its max score
2. Write a short synthesis and a decision recommendation
3. Return structured JSON keyed by criterion *name*
"""

import json

from ..models.evaluation import AIEvaluationRequest


SYSTEM_PROMPT = (
    "You are an expert evaluator of funding proposals for small and medium "
    "enterprises. Assess projects objectively against the criteria provided "
    "and answer only with the JSON document requested."
)


EVALUATION_PROMPT = """You are producing a professional PROJECT EVALUATION REPORT for a funding committee.

=== PROJECT OVERVIEW ===

Title: {title}
Budget: {budget}
Timeline: {timeline}
Submission date: {submission_date}
Tags: {tags}{form_block}{program_block}

=== PROJECT SUMMARY ===
{description}

=== EVALUATION OBJECTIVE ===
Measure the relevance, feasibility and economic viability of the project.
Identify risks and levers of success.
Make a recommendation for the funding decision.

=== EVALUATION CRITERIA ===
{criteria_block}{custom_block}

=== RESPONSE FORMAT ===
Answer ONLY with the following JSON (no markdown, no comments):

{response_schema}

=== DECISION GUIDELINES ===
- "selected": overall score >= 80% (recommended for funding)
- "pre_selected": overall score >= 60% (promising, needs adjustments)
- "rejected": overall score < 60% (not recommended)

Be rigorous, objective and professional."""


PROMPT_VARIABLES = {
    "{{program_name}}": "name",
    "{{program_description}}": "description",
    "{{partner_name}}": "partner_name",
    "{{budget_range}}": "budget_range",
}


def build_evaluation_prompt(request: AIEvaluationRequest) -> str:
    """Render the evaluation prompt for one project.

    Args:
        request: Project summary, criteria and optional program context

    Returns:
        Formatted prompt string
    """

    project = request.project_data

    form_block = ""
    if project.form_data:
        lines = [f"- {key}: {value}" for key, value in project.form_data.items()]
        form_block = "\n\nAdditional form answers:\n" + "\n".join(lines)

    program_block = ""
    if request.program_context:
        ctx = request.program_context
        program_block = (
            f"\nProgram: {ctx.name}"
            f"\nImplementing partner: {ctx.partner_name}"
            f"\nProgram budget: {ctx.budget_range}"
        )

    criteria_block = "\n".join(
        f"  - {c.name} (weight: {c.weight:g}%, max score: {c.max_score:g}) - {c.description}"
        for c in request.evaluation_criteria
    )

    custom_block = ""
    if request.custom_prompt:
        custom_block = (
            "\n\nPROGRAM-SPECIFIC INSTRUCTIONS:\n"
            + render_custom_prompt(request.custom_prompt, request)
        )

    submission_date = (
        project.submission_date.date().isoformat() if project.submission_date else "not submitted"
    )

    return EVALUATION_PROMPT.format(
        title=project.title,
        budget=f"{project.budget:,.0f}",
        timeline=project.timeline or "not specified",
        submission_date=submission_date,
        tags=", ".join(project.tags) or "none",
        form_block=form_block,
        program_block=program_block,
        description=project.description or "(no description provided)",
        criteria_block=criteria_block,
        custom_block=custom_block,
        response_schema=_response_schema(request),
    )


def render_custom_prompt(custom_prompt: str, request: AIEvaluationRequest) -> str:
    """Substitute ``{{program_name}}``-style variables when a program context exists."""

    if not request.program_context:
        return custom_prompt

    rendered = custom_prompt
    for placeholder, attribute in PROMPT_VARIABLES.items():
        rendered = rendered.replace(placeholder, getattr(request.program_context, attribute))
    return rendered


def _response_schema(request: AIEvaluationRequest) -> str:
    names = [c.name for c in request.evaluation_criteria]
    schema = {
        "scores": {
            c.name: f"<number between 0 and {c.max_score:g}>"
            for c in request.evaluation_criteria
        },
        "notes": "Overall synthesis in 2-3 paragraphs.",
        "recommendation": "pre_selected|selected|rejected",
        "detailed_analysis": {
            "strengths": ["..."],
            "weaknesses": ["..."],
            "opportunities": ["..."],
            "risks": ["..."],
            "observations": {name: "2-3 sentences on this criterion" for name in names},
        },
    }
    return json.dumps(schema, indent=2, ensure_ascii=False)
