from __future__ import annotations

import json
from typing import Any

from shipit.models.report import SECTION_FIELDS, SectionName
from shipit.models.research import RealMarketData

# --- Research ---


def build_research_prompt(idea: str) -> str:
    return (
        f'You are a startup research analyst. A user wants to build: "{idea}"\n\n'
        "Research this startup idea thoroughly using the search tools available to you. "
        "You MUST call the search tools to gather real data. Make multiple searches to cover:\n\n"
        "1. Competitors: who are the main competitors? What is their funding, pricing, market position?\n"
        "2. Market data: how big is this market? What are the growth trends?\n"
        "3. User complaints: what do users complain about with existing solutions?\n"
        "4. Regulatory: are there licensing, compliance, or regulatory requirements?\n"
        "5. Case studies: have similar startups succeeded or failed? What can we learn?\n\n"
        "Make at least 5 different searches across these categories. "
        "Be specific with your search queries based on the startup idea."
    )


RESEARCH_SYNTHESIS_PROMPT = """Based on all the research you've gathered, synthesize your findings into a structured JSON object with these exact fields:

{
  "competitors": [
    { "name": "...", "description": "...", "funding": "...", "pricing": "...", "strengths": ["..."], "weaknesses": ["..."] }
  ],
  "market": {
    "marketSize": "...",
    "growthRate": "...",
    "keyTrends": ["..."],
    "targetDemographics": ["..."]
  },
  "userComplaints": [
    { "source": "...", "content": "...", "theme": "..." }
  ],
  "caseStudies": [
    { "name": "...", "outcome": "succeeded/failed/acquired/pivoted", "keyDetails": "...", "lesson": "..." }
  ],
  "regulatory": [
    { "area": "...", "requirements": "...", "complexity": "Low/Medium/High" }
  ]
}

Include 3-5 competitors, 3-5 user complaints, 2-3 case studies, and any relevant regulatory info. Base everything on the actual search results, not hypotheticals. Return ONLY the JSON object."""


# --- Sections ---

VISION_PROMPT = """You are generating the "Vision" section of a startup validation report. Based on the research data provided, generate a JSON object with these EXACT fields:

{
  "name": "Short startup name (2-3 words max)",
  "tagline": "One-line tagline describing the value proposition",
  "valueProposition": "2-3 sentence value proposition",
  "businessModel": "Business model description (e.g., 'Commission-based marketplace (15% fee)')",
  "features": ["Feature 1", "Feature 2", "Feature 3", "Feature 4", "Feature 5"],
  "ahaMoment": "The moment when users first experience the core value",
  "targetUsers": {
    "primary": { "name": "Segment", "description": "Who they are", "pains": ["..."], "gains": ["..."] },
    "secondary": { "name": "Segment", "description": "Who they are", "pains": ["..."], "gains": ["..."] }
  },
  "unitEconomicsSnapshot": {
    "customerPays": 0,
    "platformKeeps": 0,
    "workerGets": 0,
    "breakdown": "Customer pays $X -> Platform takes $Y (Z%) -> Provider earns $W"
  },
  "problemSolutionMap": { "problem": "Core problem", "solution": "How this startup solves it", "value": "The value created" }
}

IMPORTANT:
- name: create a distinctive, brandable name. Do NOT use the pattern "[Domain] AI" or "AI [Domain]", and do not reuse the name of a well-known company in the same space.
- tagline: specific to what makes this startup unique, not a generic statement.
- ahaMoment: a specific, emotionally vivid moment rather than a generic benefit.
- Use research data for realistic pricing and positioning. All monetary values must be numbers.

Return ONLY the JSON."""


MARKET_PROMPT_BODY = """You are generating the "Market" section of a startup validation report. Based on the research data provided, generate a JSON object with these EXACT fields:

{
  "market": {
    "trendsData": [{ "date": "2019", "value": 0 }],
    "demandTrend": [{ "year": "2019", "value": 0 }],
    "demandTrendSubtitle": "What the demand trend measures",
    "workforceSubtitle": "The workforce being measured, e.g. 'Licensed home health aides'",
    "workforceCapacity": [{ "city": "San Francisco", "count": 185000 }],
    "opportunityGap": [{ "year": "2019", "demand": 55, "supply": 20 }],
    "fundingTotal": "$2.3B+",
    "jobPostings": 2500,
    "userQuotes": [{ "platform": "reddit", "content": "...", "insight": "...", "url": "https://..." }]
  },
  "marketExtended": {
    "marketSize": { "tam": 0, "sam": 0, "som": 0 },
    "fundingActivity": {
      "total": "$2.3B+",
      "recentRounds": [{ "company": "...", "amount": "$150M", "date": "2023", "stage": "Series C" }]
    },
    "jobPostingsTrend": [{ "year": "2021", "postings": 1200 }],
    "regulatoryLandscape": [{ "state": "CA", "complexity": "High", "licensing": "Required", "notes": "..." }],
    "hypeVsReality": [{ "year": "2019", "hype": 30, "reality": 25 }]
  }
}"""

MARKET_PROMPT_RULES = """IMPORTANT:
- trendsData and demandTrend: one point per year from 2019 to 2024.
- workforceCapacity: 3-5 cities with realistic, varied numbers grounded in the workforce data above.
- opportunityGap: "demand" = unmet need (0-100), "supply" = existing coverage (0-100). Use EXACTLY those field names. 5-6 points from 2019-2024.
- jobPostings: current active postings in this space (must be > 0).
- userQuotes: 3-5 quotes from the research data, using the platform name from each URL.
- fundingActivity.recentRounds: 3-4 real rounds with actual company names. Use "Undisclosed" when the amount is unknown.
- TAM/SAM/SOM: raw numbers (e.g., 50000000000 for $50B). CRITICAL: TAM > SAM > SOM > 0 always.
- jobPostingsTrend: 5 points from 2021-2025.
- regulatoryLandscape: 3-4 entries with specific regulation descriptions.
- hypeVsReality: 5-6 points. If Google Trends data is provided, use those values for "hype".

Return ONLY the JSON."""


def _snippet_lines(hits: list[Any]) -> str:
    return "\n".join(f"- {h.title}: {h.snippet} ({h.link})" for h in hits[:4])


def build_market_prompt(real_data: RealMarketData | None) -> str:
    """Market instructions, grounded in fetched data whenever it exists."""
    parts = [MARKET_PROMPT_BODY]

    trends = real_data.google_trends if real_data else None
    if trends and trends.data:
        series = json.dumps([p.to_wire() for p in trends.data])
        parts.append(
            "## REAL Google Trends Data (USE THIS, do not fabricate)\n"
            f'Keyword: "{trends.keyword}"\n'
            f"Data: {series}\n\n"
            "For trendsData and demandTrend you MUST use these exact values:\n"
            '- trendsData: { "date": year, "value": value }\n'
            '- demandTrend: { "year": year, "value": value }\n'
            f"- demandTrendSubtitle: \"'{trends.keyword}' search interest (Google Trends)\"\n"
            '- hypeVsReality: use these values as "hype"; estimate "reality" as a share of hype '
            "(60-85% in mature markets, 30-50% in overhyped ones) from the research."
        )
    else:
        parts.append(
            "NOTE: Google Trends data was unavailable. For trendsData and demandTrend, estimate "
            "realistic values from the research data. Not every market has a smooth upward curve; "
            "reflect the real shape of THIS market's trend."
        )

    if real_data and real_data.job_posting_stats:
        parts.append(
            "## Real Job Posting Data (from web search, use these as basis)\n"
            f"{_snippet_lines(real_data.job_posting_stats)}\n"
            "Ground jobPostings and jobPostingsTrend in these sources."
        )
    if real_data and real_data.workforce_stats:
        parts.append(
            "## Real Workforce/Labor Data (from web search, use these as basis)\n"
            f"{_snippet_lines(real_data.workforce_stats)}\n"
            "Ground workforceCapacity in these sources."
        )

    parts.append(MARKET_PROMPT_RULES)
    return "\n\n".join(parts)


BATTLEFIELD_PROMPT = """You are generating the "Battlefield" (competitive analysis) section of a startup validation report. Based on the research data provided, generate a JSON object with these EXACT fields:

{
  "competitors": [
    { "name": "Competitor1", "x": 80, "y": 70, "funding": "$XXM", "pricing": "Premium" },
    { "name": "YOU", "x": 45, "y": 35, "funding": "$0", "pricing": "Your Position" }
  ],
  "secondaryCompetitors": [{ "name": "Adjacent1", "x": 60, "y": 50, "funding": "$XXM", "pricing": "Task-Based" }],
  "strategicPosition": { "opportunity": "Specific market gap", "risk": "Biggest competitive threat" },
  "featureMatrix": {
    "features": ["Feature 1", "Feature 2", "Feature 3", "Feature 4", "Feature 5", "Feature 6"],
    "competitors": [{ "name": "You", "values": [true, true, true, true, true, false] }]
  },
  "competitorFunding": [{ "date": "2019", "competitors": [{ "name": "Competitor1", "value": 10 }] }],
  "saturationScore": { "score": 60, "label": "Moderately Crowded", "description": "..." },
  "moatAnalysis": { "networkEffects": 40, "brandTrust": 30, "switchingCosts": 25, "dataAdvantage": 20, "regulatoryBarriers": 50 },
  "caseStudies": [
    {
      "name": "Company",
      "years": "2012-2015",
      "outcome": "failed",
      "timeline": [{ "date": "2012", "event": "..." }],
      "lesson": "..."
    }
  ]
}

IMPORTANT:
- competitors x/y: x = market coverage (0-100), y = feature completeness (0-100). Include 3-5 primary competitors plus "YOU".
- Unknown competitor funding is "Undisclosed", never "$0". Only "YOU" has "$0".
- secondaryCompetitors may be an empty array.
- featureMatrix: 5-7 features, "You" first. "You" should NOT have every feature; give competitors credit for what they actually have.
- competitorFunding: $M over 4-5 periods, only competitors with significant funding.
- saturationScore.score: 0 = blue ocean, 100 = saturated. moatAnalysis values: 0-100.
- caseStudies: 2-3 REAL, named companies in the SAME industry, with verifiable details. Outcome is one of "succeeded", "failed", "acquired", "pivoted".

Return ONLY the JSON."""


VERDICT_PROMPT = """You are generating the "Verdict" section of a startup validation report. You have access to the research data AND the previously generated sections (under "previousSections"). Generate a JSON object with these EXACT fields:

{
  "strengths": [{ "title": "STRENGTH TITLE", "description": "...", "source": "Data source" }],
  "risks": [{ "title": "RISK TITLE", "description": "...", "source": "Data source" }],
  "hardQuestion": "The single hardest question this founder must answer",
  "verdict": "2-3 sentence overall assessment",
  "unitEconomics": { "ltv": 0, "cac": 0, "ratio": 0, "paybackMonths": 0, "grossMargin": 0 },
  "bullBearCase": {
    "bull": { "scenario": "...", "outcome": "...", "probability": "XX%" },
    "bear": { "scenario": "...", "outcome": "...", "probability": "XX%" }
  },
  "profitabilityPath": [{ "milestone": "Launch MVP", "months": 0, "mrr": 0 }],
  "defensibilityScore": { "networkEffects": 60, "brandTrust": 45, "switchingCosts": 35, "dataAsset": 30, "scale": 25, "overallScore": 39, "label": "Weak Moat" },
  "finalVerdict": { "recommendation": "Go", "confidence": "Medium", "reasoning": "...", "goNoGo": "GO if [specific condition]" },
  "fatalFlaw": { "title": "...", "description": "...", "example": "..." },
  "successPattern": { "title": "...", "description": "...", "keyMetrics": "..." },
  "riskBaseline": {
    "failed": { "name": "Failed Company", "burnRate": "$XXK/mo", "growthRate": "XX% MoM", "marketCoverage": "X cities", "runway": "XX months" },
    "yourPlan": { "name": "Your Roadmap", "burnRate": "$XXK/mo", "growthRate": "XX% MoM", "marketCoverage": "X cities", "runway": "XX+ months" }
  },
  "techEvolution": [{ "year": "2010", "tech": "...", "impact": "..." }],
  "nextSteps": [{ "priority": "critical", "title": "...", "description": "..." }],
  "recommendedBlocks": ["market-regulatory", "verdict-bull-bear"]
}

IMPORTANT:
- strengths and risks: 3-4 each, evidence-backed with real sources.
- hardQuestion: under 15 words, sharp and specific.
- unitEconomics: LTV and CAC in dollars, ratio = LTV/CAC, grossMargin 0-100.
- profitabilityPath: 5 milestones with months from start and MRR in dollars.
- defensibilityScore label: "No Moat" (0-20), "Weak Moat" (21-40), "Moderate Moat" (41-60), "Strong Moat" (61-80), "Fortress" (81-100).
- finalVerdict.recommendation is one of "Go", "Validate First", "Pivot", "No-Go".
- nextSteps: 3-5 items, priority "critical", "important" or "helpful".
- bullBearCase: probabilities reflect this idea's actual odds; bull + bear sum to 50-70%.
- recommendedBlocks: pick 5-8 blocks relevant to THIS idea from "vision-target-users", "market-regulatory", "market-hype-reality", "battlefield-feature-matrix", "battlefield-funding-velocity", "battlefield-saturation", "battlefield-moat-analysis", "battlefield-case-studies", "verdict-bull-bear", "verdict-profitability-path", "verdict-defensibility", "verdict-fatal-flaw", "advisors-competitor-user".

Return ONLY the JSON."""


ADVISORS_PROMPT = """You are generating advisor personas for a startup validation report. Based on the research data, create 3 realistic advisor personas who give different perspectives on this startup idea.

Generate a JSON object with this EXACT structure:

{
  "advisors": [
    {
      "id": "target-customer",
      "name": "Full Name",
      "title": "Job Title",
      "company": "Context (e.g., 'Lives in suburban Boston')",
      "avatar": "XX",
      "color": "#3fb950",
      "bio": "2-3 sentence bio",
      "expertise": ["Area 1", "Area 2", "Area 3"],
      "openingMessage": "A realistic 2-3 sentence first message showing their perspective and concerns.",
      "systemContext": "You are [Name], a [role]. [How to respond in character].",
      "voiceGender": "female"
    }
  ]
}

IMPORTANT:
- IDs must be exactly "target-customer", "skeptical-vc", "competitor-customer".
- colors: "#3fb950" (target-customer), "#58a6ff" (skeptical-vc), "#f778ba" (competitor-customer).
- avatar: exactly 2 uppercase initials. voiceGender: "male" or "female", matching the persona.
- The skeptical VC references specific competitors from the research. The competitor customer uses a named competitor and has specific complaints.
- When the data includes a product name, personas refer to the product by that name.

Return ONLY the JSON."""


SECTION_PROMPTS: dict[SectionName, str] = {
    SectionName.VISION: VISION_PROMPT,
    SectionName.BATTLEFIELD: BATTLEFIELD_PROMPT,
    SectionName.VERDICT: VERDICT_PROMPT,
    SectionName.ADVISORS: ADVISORS_PROMPT,
}


def section_prompt(section: SectionName, real_data: RealMarketData | None = None) -> str:
    if section is SectionName.MARKET:
        return build_market_prompt(real_data)
    return SECTION_PROMPTS[section]


def build_section_input(prompt: str, context: dict[str, Any]) -> str:
    return f"{prompt}\n\n## Research Data\n\n{json.dumps(context, indent=2)}"


def build_edit_prefix(edit_instruction: str, current_data: dict[str, Any]) -> str:
    return (
        f"IMPORTANT EDIT INSTRUCTION: {edit_instruction}\n\n"
        "The user has requested changes. Here is the current data for context:\n"
        f"{json.dumps(current_data, indent=2)}\n\n"
        "Regenerate this section incorporating the requested changes while keeping "
        "the overall analysis consistent.\n\n"
    )


# --- Follow-up agent ---


def _focus_line(focused_block: dict[str, str] | None) -> str:
    if not focused_block:
        return ""
    return (
        f'Context: the user is viewing the "{focused_block.get("label", "")}" block '
        f'in the "{focused_block.get("section", "")}" section.'
    )


def build_classify_prompt(message: str, focused_block: dict[str, str] | None) -> str:
    return (
        'Classify this user message as either a "question" (asking about the data or analysis) '
        'or an "edit" (requesting changes to the report).\n\n'
        f'User message: "{message}"\n'
        f"{_focus_line(focused_block)}\n\n"
        'Return JSON: { "type": "question" | "edit", "reasoning": "brief explanation" }'
    )


def build_answer_prompt(
    message: str,
    current_data: dict[str, Any],
    focused_block: dict[str, str] | None,
    sources: list[dict[str, str]],
) -> str:
    lines = [
        "You are a startup mentor helping a founder understand their validation report. "
        "Answer their question using the report data below.",
        "",
        "## Report Data",
        json.dumps(current_data, indent=2),
    ]
    if sources:
        lines += ["", "## Sources"]
        lines += [
            f"[{i}] {s.get('title', '')}: {s.get('snippet', '')} ({s.get('link', '')})"
            for i, s in enumerate(sources, start=1)
        ]
    focus = _focus_line(focused_block)
    if focus:
        lines += ["", focus]
    lines += [
        "",
        "## User Question",
        message,
        "",
        "Be concise (2-4 sentences), specific to their data, and actionable. "
        "Reference specific numbers and findings from the report.",
    ]
    if sources:
        lines.append(
            'If you used any of the numbered sources, end with a line "Sources: [n], [m]".'
        )
    return "\n".join(lines)


def _field_table() -> str:
    return "\n".join(
        f"- {section.value}: {', '.join(fields)}" for section, fields in SECTION_FIELDS.items()
    )


def build_edit_plan_prompt(message: str, current_data: dict[str, Any]) -> str:
    return (
        "A user wants to edit their startup validation report. Decide which sections must be "
        "regenerated and write a precise instruction for the regenerator.\n\n"
        "## Section to field mapping\n"
        f"{_field_table()}\n\n"
        "## Current Report\n"
        f"{json.dumps(current_data, indent=2)}\n\n"
        "## Edit Request\n"
        f'"{message}"\n\n'
        "Return JSON with this structure:\n"
        "{\n"
        '  "editDescription": "Short description of the change",\n'
        '  "editInstruction": "Precise instruction applied when regenerating each section",\n'
        '  "affectedSections": ["vision", "market", "battlefield", "verdict", "advisors"],\n'
        '  "response": "Brief message to the user explaining what will change"\n'
        "}\n\n"
        "Rules:\n"
        "- Only include sections whose fields would actually change. Most edits affect 1-3 sections.\n"
        '- Always include "verdict" when any other section changes, since it summarizes everything.\n'
        '- If "vision" changes (for example the name or tagline), also include "advisors", '
        "since the personas mention the product by name."
    )


CLARIFICATION_MESSAGE = (
    "I understand you want to make a change. "
    "Could you be more specific about what you'd like to update?"
)


# --- Advisor chat ---


def build_advisor_system_prompt(advisor: dict[str, Any], report: dict[str, Any]) -> str:
    market = report.get("market") or {}
    competitors = ", ".join(
        f"{c.get('name', '')} ({c.get('funding', '')})" for c in report.get("competitors") or []
    )
    name = advisor.get("name", "")
    return (
        f"{advisor.get('systemContext', '')}\n\n"
        "## Your Background\n"
        f"Name: {name}\n"
        f"Title: {advisor.get('title', '')}\n"
        f"Company/Context: {advisor.get('company', '')}\n"
        f"Bio: {advisor.get('bio', '')}\n"
        f"Expertise: {', '.join(advisor.get('expertise') or [])}\n\n"
        "## Startup Being Discussed\n"
        f"Name: {report.get('name', '')}\n"
        f"Tagline: {report.get('tagline', '')}\n"
        f"Value Proposition: {report.get('valueProposition', '')}\n"
        f"Business Model: {report.get('businessModel', '')}\n"
        f"Key Features: {', '.join(report.get('features') or [])}\n\n"
        "## Key Data Points\n"
        f"- Market: {market.get('fundingTotal', 'unknown')} in competitor funding, "
        f"{market.get('jobPostings', 'unknown')} job postings\n"
        f"- Competitors: {competitors}\n"
        f"- Verdict: {report.get('verdict', '')}\n"
        f"- Hard Question: {report.get('hardQuestion', '')}\n\n"
        "## Instructions\n"
        f"Stay in character as {name}. Reference specific data from the report when relevant. "
        "Keep responses conversational (2-4 sentences). Be genuine and specific, not generic. "
        "React to what the founder says."
    )
