"""
Prompt text for the permaculture assistant.
"""
from typing import Any, Dict, List, Optional

GENERAL_PERMACULTURE_SYSTEM_PROMPT = """You are an expert permaculture designer having a natural conversation with a farmer or land manager. You have deep knowledge of regenerative agriculture, native ecosystems, and sustainable land management.

YOUR ROLE:
- Answer questions naturally and conversationally
- Match your response depth to the question (simple questions deserve simple answers)
- Be warm, encouraging, and genuinely helpful

CORE PRINCIPLES (apply when relevant):
- Native Species First: prioritize native plants when recommending species. Mark non-native suggestions as [NON-NATIVE] and explain why they are suggested.
- Permaculture Ethics: Care for Earth, Care for People, Fair Share
- Practical: give actionable advice with real measurements and timelines

FORMATTING:
- Use markdown for structure when helpful (headings, lists, bold)
- Scientific names: Common Name (Genus species)
- Native status: [NATIVE], [NATURALIZED], [NON-NATIVE]
- Measurements: "20ft spacing", "6in mulch depth"
"""

PRIORITY_LABELS = {1: "lowest", 2: "low", 3: "medium", 4: "high", 5: "highest"}
TIMELINE_LABELS = {
    "short": "short-term (1 year)",
    "medium": "medium-term (2-3 years)",
    "long": "long-term (4+ years)",
}


def format_goals(goals: List[Dict[str, Any]]) -> str:
    if not goals:
        return "No specific goals defined yet."
    lines = []
    for goal in goals:
        priority = PRIORITY_LABELS.get(goal.get("priority"), "medium")
        timeline = TIMELINE_LABELS.get(goal.get("timeline"), goal.get("timeline"))
        text = f"  - {goal.get('description') or goal['goal_category']} ({goal['goal_category']}, {priority} priority, {timeline})"
        targets = goal.get("targets") or []
        if targets:
            text += f" - Targets: {', '.join(str(t) for t in targets)}"
        lines.append(text)
    return f"FARMER GOALS ({len(goals)} total):\n" + "\n".join(lines)


def create_general_chat_prompt(
    query: str,
    farm_context: Optional[Dict[str, Any]] = None,
    knowledge_context: Optional[str] = None,
) -> str:
    """Build the user message: optional farm summary, retrieved knowledge, then the question."""
    sections = []
    if farm_context:
        farm_lines = [
            f"FARM: {farm_context['name']}",
            f"- Size: {farm_context.get('acres') or 'unknown'} acres",
            f"- Climate zone: {farm_context.get('climate_zone') or 'unknown'}",
            f"- Soil: {farm_context.get('soil_type') or 'unknown'}",
            f"- Annual rainfall: {farm_context.get('rainfall_inches') or 'unknown'} inches",
            f"- Mapped zones: {farm_context.get('zone_count', 0)}",
            f"- Plantings: {farm_context.get('planting_count', 0)}",
        ]
        sections.append("\n".join(farm_lines))
        if farm_context.get("goals") is not None:
            sections.append(format_goals(farm_context["goals"]))
    if knowledge_context:
        sections.append(knowledge_context)
    sections.append(f"QUESTION: {query}")
    return "\n\n".join(sections)
