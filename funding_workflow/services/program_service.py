"""Program management and the program-derived inputs of screening and scoring."""

import logging
from typing import Any, Optional

from ..eligibility.filter import parse_eligibility_criteria
from ..errors import NotFoundError
from ..models.eligibility import FieldEligibilityCriterion
from ..models.evaluation import ProgramContext
from ..models.program import Program
from ..models.user import User
from ..scorer.weights import validate_evaluation_criteria
from ..workflow.transitions import ensure_staff

logger = logging.getLogger(__name__)


class ProgramService:
    def __init__(self, store, default_currency: str = "XOF"):
        self._store = store
        self._default_currency = default_currency

    def get_program(self, program_id: str) -> Program:
        return self._store.get_program(program_id)

    def list_programs(self, partner_id: Optional[str] = None) -> list[Program]:
        return self._store.list_programs(partner_id)

    def create_program(self, program: Program, user: User) -> Program:
        """Store a new program after checking its evaluation weights.

        A program created without an explicit currency gets the configured
        default currency.

        Raises:
            PermissionDeniedError: user is not a manager or admin
            CriteriaWeightError: duplicate criterion ids or weights above 100
        """
        ensure_staff(user, "create programs")
        validate_evaluation_criteria(program.evaluation_criteria)
        if "currency" not in program.model_fields_set:
            program = program.model_copy(update={"currency": self._default_currency})
        created = self._store.create_program(program)
        logger.info(
            "program_created id=%s criteria=%d total_weight=%g",
            created.id, len(created.evaluation_criteria), created.total_weight(),
        )
        return created

    def update_program(self, program_id: str, updates: dict[str, Any], user: User) -> Program:
        """Apply a partial edit, revalidating weights and eligibility rules.

        Raises:
            CriteriaWeightError: duplicate criterion ids or weights above 100
            EligibilityRuleError: a selection rule is malformed
        """
        ensure_staff(user, "edit programs")
        current = self._store.get_program(program_id)
        if "selection_criteria" in updates:
            updates = {
                **updates,
                "selection_criteria": parse_eligibility_criteria(updates["selection_criteria"]),
            }

        merged = Program.model_validate({**current.model_dump(), **updates})
        validate_evaluation_criteria(merged.evaluation_criteria)

        return self._store.update_program(
            program_id, {name: getattr(merged, name) for name in updates}
        )

    def eligibility_criteria_for(self, program: Program) -> list[FieldEligibilityCriterion]:
        """Program-level rules followed by the rules attached to its form fields."""
        criteria = [c for c in program.selection_criteria if c.is_eligibility_criteria]
        if program.form_template_id:
            template = self._store.get_form_template(program.form_template_id)
            criteria.extend(template.eligibility_criteria())
        return criteria

    def evaluation_context(self, program: Program) -> ProgramContext:
        """Program block for AI scoring prompts."""
        partner_name = ""
        try:
            partner_name = self._store.get_partner(program.partner_id).name
        except NotFoundError:
            logger.warning("Program %s references unknown partner %s", program.id, program.partner_id)

        return ProgramContext(
            name=program.name,
            description=program.description,
            partner_name=partner_name,
            budget_range=format_budget(program.budget, program.currency),
        )


def format_budget(amount: float, currency: str) -> str:
    """``1500000, "XOF"`` -> ``"1,500,000 XOF"``."""
    return f"{amount:,.0f} {currency}"
