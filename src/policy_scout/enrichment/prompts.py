"""Prompt templates for the policy enrichment pass."""

from __future__ import annotations

from policy_scout.models import PolicyType

ENRICHMENT_SYSTEM_PROMPT = """You are an experienced insurance advisor reviewing a \
consumer's policy. You receive extracted policy details and the findings of an \
automated risk analysis. Explain what matters, in plain language, and never \
invent coverage details that are not in the input."""

ENRICHMENT_PROMPT = """Analyze this {policy_label} and provide an assessment.

Policy details:
{policy_context}

Automated risk analysis:
- Overall risk score: {risk_score}/100 ({risk_level})
- Critical issues: {critical_count}
- Top findings:
{top_findings}

Policyholder profile:
{profile_context}

Focus on:
{focus_areas}

Return a JSON object with this exact structure:
{{
    "overall_rating": "<letter grade A+ to F>",
    "coverage_score": <integer 0-100>,
    "risk_level": "<low|medium|high|critical>",
    "key_findings": [
        {{"title": "<short title>", "description": "<one or two sentences>",
          "severity": "<low|medium|high|critical>", "type": "<gap|risk|opportunity|general>",
          "recommendation": "<what to do>"}}
    ],
    "recommendations": [
        {{"title": "<short title>", "description": "<details>",
          "priority": "<critical|high|medium|low>", "impact": "<expected benefit>"}}
    ],
    "next_steps": ["<concrete step>"],
    "confidence": <integer 0-100, how sure you are of this assessment>
}}"""

FOCUS_AREAS: dict[PolicyType, list[str]] = {
    PolicyType.AUTO: [
        "Liability limits against the driver's assets",
        "Collision and comprehensive value for the vehicle's age",
        "Uninsured/underinsured motorist protection",
        "Discount opportunities (multi-policy, safety features)",
    ],
    PolicyType.HOME: [
        "Dwelling limit against rebuild cost",
        "Personal property valuation (replacement cost vs. actual cash value)",
        "Liability and medical payments limits",
        "Regional perils excluded by standard forms (flood, earthquake)",
    ],
    PolicyType.RENTERS: [
        "Personal property limit against belongings",
        "Liability coverage adequacy",
        "Additional living expenses",
    ],
    PolicyType.LIFE: [
        "Death benefit against income replacement needs",
        "Term length against dependents' needs",
        "Riders and conversion options",
    ],
    PolicyType.HEALTH: [
        "Deductible and out-of-pocket maximum against savings",
        "Network adequacy and prescription coverage",
        "Preventive and mental health benefits",
    ],
    PolicyType.DISABILITY: [
        "Benefit amount and elimination period",
        "Own-occupation vs any-occupation definition",
    ],
    PolicyType.UMBRELLA: [
        "Underlying limit requirements",
        "Excess liability amount against net worth",
    ],
    PolicyType.BUSINESS: [
        "General and professional liability limits",
        "Business interruption and property coverage",
    ],
    PolicyType.UNKNOWN: [
        "Overall coverage adequacy",
        "Obvious gaps and next steps to clarify the policy type",
    ],
}
