"""
Sales pipeline configuration: stage order, stage-gate rules and field mappings.
"""

from typing import Any, Dict, FrozenSet, List

from opportunity.models import RequiredField, StageGateRule


SALESFORCE_STAGES: List[str] = [
    "Prospect",
    "Qualification",
    "Value Alignment",
    "Technical Validation",
    "Business Justification",
    "Negotiate & Trade",
    "Closed Won",
    "Closed Lost",
]


def _positive_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        return float(value) > 0
    except (TypeError, ValueError):
        return False


def _technical_win(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower() in ("yes", "bypass")


STAGE_GATES: List[StageGateRule] = [
    StageGateRule(
        from_stage="Prospect",
        to_stage="Qualification",
        required_fields=(
            RequiredField("Amount", "Amount", "Deal size estimate", _positive_number),
            RequiredField("Primary_Contact__c", "Primary Contact", "Primary contact for this opportunity"),
        ),
    ),
    StageGateRule(
        from_stage="Qualification",
        to_stage="Value Alignment",
        required_fields=(
            RequiredField("Implicated_Pain__c", "Implicated Pain", "Customer pain point identified"),
            RequiredField("Pain_Quality__c", "Pain Quality", "Quality of pain identified"),
            RequiredField("NextStep", "Next Step", "Next action to take"),
            RequiredField("Value_Driver__c", "Value Driver", "What drives value for customer"),
            RequiredField("Partner_Identified__c", "Partner Identified", "Partner involvement"),
            RequiredField("Tech_Stack__c", "Tech Stack", 'Technology stack (enter "None" if no partners)'),
            RequiredField("Metrics__c", "Metrics", "Key metrics for this opportunity"),
        ),
    ),
    StageGateRule(
        from_stage="Value Alignment",
        to_stage="Technical Validation",
        required_fields=(
            RequiredField("Metrics__c", "Metrics", "Key metrics confirmed"),
            RequiredField("Decision_Process__c", "Decision Process", "How they make decisions"),
            RequiredField("Decision_Criteria__c", "Decision Criteria", "What criteria they use"),
            RequiredField(
                "Decision_Criteria_Quality__c", "Decision Criteria Quality",
                "Quality of criteria understanding",
            ),
            RequiredField("Identified_Pain__c", "Identified Pain", "Confirmed pain point"),
            RequiredField("Champion__c", "Champion", "Internal champion identified"),
        ),
    ),
    StageGateRule(
        from_stage="Technical Validation",
        to_stage="Business Justification",
        required_fields=(
            RequiredField("Decision_Criteria__c", "Decision Criteria", "Decision criteria confirmed"),
            RequiredField("Decision_Process__c", "Decision Process", "Decision process confirmed"),
            RequiredField("Champion__c", "Champion", "Champion confirmed"),
            RequiredField("Competition__c", "Competition", "Competitive landscape"),
            RequiredField("Workload_URL__c", "Workload URL", "Workload or demo URL"),
            RequiredField(
                "Technical_Win_Status__c", "Technical Win Status",
                'Must be "Yes" or "Bypass"', _technical_win,
            ),
        ),
        warning_message="Technical validation must be signed off before building the business case.",
    ),
    StageGateRule(
        from_stage="Business Justification",
        to_stage="Negotiate & Trade",
        required_fields=(
            RequiredField("Economic_Buyer__c", "Economic Buyer", "Economic decision maker"),
            RequiredField("Paper_Process__c", "Paper Process", "Procurement/contract process"),
            RequiredField(
                "Paper_Process_Quality__c", "Paper Process Quality",
                "Quality of process understanding",
            ),
        ),
    ),
    StageGateRule(
        from_stage="Negotiate & Trade",
        to_stage="Closed Won",
        required_fields=(
            RequiredField("Win_Reason__c", "Win Reason", "Why we won"),
            RequiredField("Solution__c", "Solution", "Solution provided"),
            RequiredField("Closed_Won_Checklist__c", "Closed Won Checklist", "Pre-closed won checklist completed"),
            RequiredField(
                "Technical_Win_Status__c", "Technical Win Status",
                'Must be "Yes" or "Bypass"', _technical_win,
            ),
            RequiredField("Competitors__c", "Competitors", "Competitors identified"),
            RequiredField("Workload_URL__c", "Workload URLs", "Workload URLs provided"),
        ),
        warning_message="Closed Won requires the full closing checklist.",
    ),
    # Losing a deal is allowed from any stage, but the reason must be captured.
    StageGateRule(
        from_stage=None,
        to_stage="Closed Lost",
        required_fields=(
            RequiredField("Loss_Reason__c", "Loss Reason", "Why the opportunity was lost"),
        ),
    ),
]


# Natural language term -> Salesforce API field name
FIELD_MAPPINGS: Dict[str, str] = {
    # Prospect -> Qualification
    "amount": "Amount",
    "deal size": "Amount",
    "deal value": "Amount",
    "sqo": "SQO_Date__c",
    "sqo date": "SQO_Date__c",
    "sales qualified": "SQO_Date__c",
    "prospector": "Prospector__c",
    "sdr": "SDR__c",
    "sales development rep": "SDR__c",
    "close date": "CloseDate",
    "expected close": "CloseDate",
    "closing date": "CloseDate",
    "new business": "New_Business_vs_Expansion__c",
    "expansion": "New_Business_vs_Expansion__c",
    "opp type": "New_Business_vs_Expansion__c",
    "primary product": "Primary_Product_Interest__c",
    "product interest": "Primary_Product_Interest__c",
    "primary contact": "Primary_Contact__c",

    # Qualification -> Value Alignment
    "pain": "Implicated_Pain__c",
    "pain point": "Implicated_Pain__c",
    "implicated pain": "Implicated_Pain__c",
    "pain quality": "Pain_Quality__c",
    "next step": "NextStep",
    "next steps": "NextStep",
    "value driver": "Value_Driver__c",
    "partner": "Partner_Identified__c",
    "partner identified": "Partner_Identified__c",
    "tech stack": "Tech_Stack__c",
    "technology stack": "Tech_Stack__c",
    "metrics": "Metrics__c",

    # Value Alignment -> Technical Validation
    "decision process": "Decision_Process__c",
    "decision criteria": "Decision_Criteria__c",
    "decision criteria quality": "Decision_Criteria_Quality__c",
    "identified pain": "Identified_Pain__c",
    "champion": "Champion__c",

    # Technical Validation -> Business Justification
    "competition": "Competition__c",
    "competitor": "Competitors__c",
    "competitors": "Competitors__c",
    "workload": "Workload_URL__c",
    "workload url": "Workload_URL__c",
    "technical win": "Technical_Win_Status__c",
    "tech win": "Technical_Win_Status__c",

    # Business Justification -> Negotiate & Trade
    "economic buyer": "Economic_Buyer__c",
    "decision maker": "Economic_Buyer__c",
    "paper process": "Paper_Process__c",
    "paper process quality": "Paper_Process_Quality__c",

    # Negotiate & Trade -> Closed
    "win reason": "Win_Reason__c",
    "solution": "Solution__c",
    "closed won checklist": "Closed_Won_Checklist__c",
    "loss reason": "Loss_Reason__c",

    # Common
    "account name": "AccountName",
    "opportunity name": "Name",
    "owner": "OwnerId",
    "forecast": "ForecastCategory",
    "probability": "Probability",
    "type": "Type",
    "plan": "Plan__c",
    "team": "Team__c",
}


# Fields the extraction may write, keyed by stage ("*" applies to every stage)
DEFAULT_FIELD_SCHEMA: Dict[str, FrozenSet[str]] = {
    "*": frozenset(FIELD_MAPPINGS.values()),
}
