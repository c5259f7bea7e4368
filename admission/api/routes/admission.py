from fastapi import APIRouter, Request

from admission.schemas.admission import RulesResponse, RuleView

router = APIRouter(tags=["Admission"])


@router.get("/admission/rules", response_model=RulesResponse)
def list_rules(request: Request) -> RulesResponse:
    """List the configured admission rules.

    Rules appear in registration order, which is also the tie-break order
    for equally long scope patterns. The catch-all rule is listed last.
    """

    controller = request.app.state.admission
    rules = controller.rules
    views = [
        RuleView(
            name=rule.name,
            scope_pattern=rule.scope_pattern,
            window_ms=rule.window_ms,
            max_requests=rule.max_requests,
            rejection_message=rule.rejection_message,
            is_default=index == len(rules) - 1,
        )
        for index, rule in enumerate(rules)
    ]
    return RulesResponse(
        enabled=request.app.state.admission_settings.enabled,
        rules=views,
        counters=controller.counter_count(),
    )
