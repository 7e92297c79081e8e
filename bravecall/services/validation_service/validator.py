"""Response validator - last-chance check of the drafted reply.

Runs after the safety stage has already cleared the turn, so it fails
open: an unreadable verdict or a failed call approves the reply. It can
only ever swap the reply for a suggested edit, never drop it.
"""
import logging
from typing import Optional

from bravecall.shared.models import ValidationResult
from bravecall.shared.utils import hash_text_for_audit, parse_json_reply
from bravecall.services.llm_service import BaseLLM, ChatMessage, VALIDATOR_PROFILE

logger = logging.getLogger(__name__)

VALIDATION_ERROR_ISSUE = "Validation error occurred"


def _result_from_payload(payload: dict) -> Optional[ValidationResult]:
    approved = payload.get("approved")
    if not isinstance(approved, bool):
        return None

    issues = payload.get("issues") or []
    if isinstance(issues, str):
        issues = [issues]
    if not isinstance(issues, list):
        return None

    edit = payload.get("suggestedEdit", payload.get("suggested_edit"))
    if not isinstance(edit, str) or not edit.strip():
        edit = None

    return ValidationResult(
        approved=approved,
        issues=tuple(str(issue) for issue in issues),
        suggested_edit=edit.strip() if edit else None,
    )


class ResponseValidator:
    """Reviews drafted replies for age-appropriateness, tone and boundaries."""

    def __init__(self, llm: BaseLLM):
        self.llm = llm

    async def validate(self, response_text: str) -> ValidationResult:
        """Review a drafted reply.

        Args:
            response_text: Reply drafted by a specialist agent

        Returns:
            ValidationResult; approved by default when the verdict is
            unreadable or the call fails
        """
        text_hash = hash_text_for_audit(response_text or "")
        prompt = f'Validate this response for a child:\n\n"{response_text}"'

        try:
            response = await self.llm.generate(
                messages=[ChatMessage(role="user", content=prompt)],
                system_prompt=VALIDATOR_PROFILE.system_message,
                json_mode=True,
                temperature=VALIDATOR_PROFILE.temperature,
                max_tokens=VALIDATOR_PROFILE.max_tokens,
            )
        except Exception as e:
            logger.error(
                "VALIDATION_FAILED",
                extra={
                    "text_hash": text_hash,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "APPROVING_BY_DEFAULT",
                }
            )
            return ValidationResult(approved=True, issues=(VALIDATION_ERROR_ISSUE,))

        payload = parse_json_reply(response.text)
        result = _result_from_payload(payload) if payload is not None else None

        if result is None:
            logger.warning(
                "VALIDATION_UNPARSEABLE",
                extra={"text_hash": text_hash, "action": "APPROVING_BY_DEFAULT"}
            )
            return ValidationResult(approved=True)

        if not result.approved:
            logger.warning(
                "VALIDATION_REJECTED",
                extra={
                    "text_hash": text_hash,
                    "issue_count": len(result.issues),
                    "has_edit": result.has_edit,
                }
            )
        return result
