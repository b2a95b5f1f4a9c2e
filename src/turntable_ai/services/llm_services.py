import json
import logging
import re
from langchain_groq import ChatGroq
from langchain_core.prompts import ChatPromptTemplate, PromptTemplate
from turntable_ai.config import GROQ_API_KEY, GROQ_MODEL_NAME

_logger = logging.getLogger(__name__)

VARIANT_FLAVORS = ("base", "warmer", "shorter", "more_professional")
REPLY_LENGTHS = ("short", "medium", "long")
DEFAULT_REPLY = "Thanks so much for your feedback, we appreciate you!"


class LLMConfigError(RuntimeError):
    """Raised when the LLM provider key is not configured."""


def get_llm(temperature: float = 0.7, max_tokens: int = 1024) -> ChatGroq:
    if not GROQ_API_KEY:
        raise LLMConfigError("Missing GROQ_API_KEY")
    return ChatGroq(
        model=GROQ_MODEL_NAME,
        temperature=temperature,
        max_tokens=max_tokens,
        api_key=GROQ_API_KEY,
    )


def extract_text(response) -> str:
    """
    Pull the reply text out of an LLM response.

    Tries a direct text field first (``content`` on a chat message,
    ``output_text`` on a raw responses payload), then walks a content array
    for the first block carrying ``text`` or ``output_text``.
    """
    if response is None:
        return ""
    if isinstance(response, str):
        return response.strip()

    if isinstance(response, dict):
        direct = response.get("output_text")
        output = response.get("output") or []
        content = output[0].get("content", []) if output and isinstance(output[0], dict) else []
    else:
        direct = getattr(response, "content", None)
        content = direct if isinstance(direct, list) else []

    if isinstance(direct, str) and direct.strip():
        return direct.strip()

    blocks = [block for block in content or [] if isinstance(block, dict)]
    node = next((b for b in blocks if isinstance(b.get("text"), str)), None) or \
        next((b for b in blocks if isinstance(b.get("output_text"), str)), None)
    if node is None:
        return ""
    text = node.get("text") if isinstance(node.get("text"), str) else node.get("output_text")
    return text.strip()


def _complete(messages, temperature: float = 0.7, max_tokens: int = 1024) -> str:
    llm = get_llm(temperature=temperature, max_tokens=max_tokens)
    response = llm.invoke(messages)
    return extract_text(response)


# ---------------------------------------------------------------------------
# Review replies
# ---------------------------------------------------------------------------

REPLY_PROMPT = PromptTemplate.from_template('''
You are a professional community manager for a local café{business_clause}{city_clause}. You will write a polished, brand-safe reply to a customer {platform_label}.

Constraints:
- {length_hint}
- Reply in {language} and a {tone} tone.
- {guardrails}
- {variant_instructions}
{style_guide_block}

Customer review (rating: {rating}, platform: {platform}):
"""
{review_text}
"""

Now write the reply only (no preface, no quotes).
''')

_LENGTH_HINTS = {
    "short": "Aim for 1-2 concise sentences.",
    "medium": "Aim for 2-3 sentences.",
    "long": "You may use 3-5 sentences if helpful.",
}

_VARIANT_INSTRUCTIONS = {
    "warmer": "Lean extra warm and human. Show sincere appreciation and empathy while staying concise.",
    "shorter": "Keep the reply very short and direct (1-2 concise sentences). Do not repeat the entire complaint.",
    "more_professional": "Use a more formal, polished tone suitable for a fine-dining or corporate brand.",
}


def build_reply_prompt(
    review_text: str,
    rating=None,
    platform: str = None,
    tone: str = None,
    business: str = None,
    city: str = None,
    length: str = "medium",
    policy_apologize: bool = True,
    policy_no_admission: bool = True,
    policy_offer_remedy_if_low: bool = True,
    language: str = "English",
    style_guide: str = None,
    variant_flavor: str = "base",
) -> str:
    guardrails = " ".join(filter(None, [
        "Apologize politely if needed." if policy_apologize else None,
        "Do not admit fault or liability." if policy_no_admission else None,
        "If the rating is low or there is a clear issue, offer a concrete remedy or invite them to DM/email to make it right."
        if policy_offer_remedy_if_low else None,
        "Stay brand-safe and friendly. No sarcasm. Avoid sounding defensive.",
    ]))

    style_guide_block = (
        f"\nBrand Voice Style Guide (follow closely):\n{style_guide}\n" if style_guide else ""
    )

    return REPLY_PROMPT.format(
        business_clause=f' called "{business}"' if business else "",
        city_clause=f" in {city}" if city else "",
        platform_label=platform or "review",
        length_hint=_LENGTH_HINTS.get(length or "medium", _LENGTH_HINTS["medium"]),
        language=language or "English",
        tone=tone or "friendly, appreciative",
        guardrails=guardrails,
        variant_instructions=_VARIANT_INSTRUCTIONS.get(
            variant_flavor, "Keep it clear, human, and easy to paste as a reply."
        ),
        style_guide_block=style_guide_block,
        rating=rating if rating is not None else "n/a",
        platform=platform or "n/a",
        review_text=review_text,
    ).strip()


def generate_review_reply(review_text: str, **options) -> str:
    """Draft a reply to a customer review. Empty model output falls back to a stock thank-you."""
    prompt = build_reply_prompt(review_text, **options)
    _logger.debug(f"Generating review reply with prompt: {prompt}")
    reply = _complete(prompt, temperature=0.7, max_tokens=512)
    return reply or DEFAULT_REPLY


# ---------------------------------------------------------------------------
# Review analysis
# ---------------------------------------------------------------------------

ANALYZE_PROMPT = PromptTemplate.from_template('''
You are analyzing a customer review for a local restaurant.
Return ONLY a single JSON object with this exact shape:

{{
  "detectedRating": number | null,
  "toneLabel": string | null,
  "lengthSuggestion": "short" | "medium" | "long",
  "sentimentSummary": string | null,
  "issues": string[],
  "languageName": string | null
}}

detectedRating is an integer 1-5 if clearly implied, otherwise null.
toneLabel is e.g. "Angry", "Mixed", "Happy", "Concerned but polite".
Do not include any explanation outside of the JSON.

Review:
"""
{review_text}
"""
''')


def _parse_json_object(raw: str) -> dict:
    # models sometimes wrap JSON in a ```json fence
    cleaned = re.sub(r"^```(?:json)?\s*|\s*```$", "", raw.strip())
    try:
        parsed = json.loads(cleaned)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _clean_str(value) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def normalize_analysis(parsed: dict) -> dict:
    rating_raw = parsed.get("detectedRating")
    detected_rating = None
    if isinstance(rating_raw, (int, float, str)) and not isinstance(rating_raw, bool):
        try:
            rating_num = float(rating_raw)
        except ValueError:
            rating_num = None
        if rating_num is not None and 1 <= rating_num <= 5:
            detected_rating = round(rating_num)

    length = parsed.get("lengthSuggestion")
    issues = parsed.get("issues")

    return {
        "detectedRating": detected_rating,
        "toneLabel": _clean_str(parsed.get("toneLabel")),
        "lengthSuggestion": length if length in REPLY_LENGTHS else None,
        "sentimentSummary": _clean_str(parsed.get("sentimentSummary")),
        "issues": [i.strip() for i in issues if isinstance(i, str) and i.strip()] if isinstance(issues, list) else [],
        "languageName": _clean_str(parsed.get("languageName")),
    }


def analyze_review(review_text: str) -> dict:
    raw = _complete(ANALYZE_PROMPT.format(review_text=review_text), temperature=0.0, max_tokens=400)
    return normalize_analysis(_parse_json_object(raw))


# ---------------------------------------------------------------------------
# Brand voice
# ---------------------------------------------------------------------------

STYLE_GUIDE_PROMPT = PromptTemplate.from_template('''
You are a brand voice analyst.

Given REAL social captions and/or review replies for a small, community-rooted café,
write a concise, reusable Brand Voice Style Guide as short bullet points.

Requirements:
- 8-12 bullets. Be specific and actionable.
- Cover tone, sentence length, emojis/hashtags policy, sensory language, inclusivity,
  do/don't phrasing, and examples of signature phrases.
- Keep it neutral and brand-safe (no slang that can alienate).

{samples}
''')


def build_style_guide(samples: list[str]) -> str:
    joined = "\n\n".join(f"Sample {i + 1}:\n{s.strip()}" for i, s in enumerate(samples))
    guide = _complete(STYLE_GUIDE_PROMPT.format(samples=joined).strip(), temperature=0.4)
    return guide or "No result."


# ---------------------------------------------------------------------------
# Marketing copy
# ---------------------------------------------------------------------------

QUICK_COPY_PROMPT = ChatPromptTemplate.from_messages([
    ("system", "You are a social media assistant. Platform: {platform}. Tone: {style}.\n"
               "Be short, punchy, 1-2 emojis, up to 3 relevant hashtags."),
    ("human", "{request}"),
])


def generate_quick_copy(request: str, platform: str = "Instagram", style: str = "Friendly") -> str:
    messages = QUICK_COPY_PROMPT.format_messages(platform=platform, style=style, request=request)
    return _complete(messages, temperature=0.7) or "No response."


_CAPTION_LENGTHS = {
    "short": "Keep captions <= 80 words.",
    "medium": "Keep captions <= 140 words.",
    "long": "Keep captions <= 220 words.",
}

SOCIAL_PROMPT = ChatPromptTemplate.from_messages([
    ("system", """You are an expert social media marketer for small restaurants and coffee shops.
Write the entire output in {language}. If input language differs, prefer {language}.
- Write {platform} content with a {tone} tone.
- Always make it brand-safe and conversion-minded.
- Localize hashtags to "{city}" (5-9 per variant, mix broad + local).
- Use clean formatting, no markdown headings except "### Variant 1/2/3".
- When giving Reel ideas, include: Hook (<= 8 words), Shot list (3-5 quick cuts).
- {length_hint}
{style_guide_block}"""),
    ("human", """Business: {brand}
Cuisine: {cuisine}
Special/Promo: {special}
Request: {prompt}

Mode: {mode} (one of captions | reels | both)
Output exactly 3 variants. For each:
- Start with "### Variant X"
- If mode is "captions" -> only caption + hashtags.
- If mode is "reels" -> Hook, Shot list, and a short caption line with hashtags.
- If mode is "both" -> Hook, Shot list, AND a caption.
- Include a natural CTA (visit, order, DM, link in bio).
- Never exceed Instagram's 2,200 character limit."""),
])


def generate_social_content(
    prompt: str,
    mode: str = "both",
    tone: str = "Friendly",
    platform: str = "Instagram",
    city: str = "San Diego",
    length: str = "medium",
    brand: str = "",
    cuisine: str = "",
    special: str = "",
    language: str = "English",
    style_guide: str = None,
) -> str:
    style_guide_block = (
        f"\n=== BRAND VOICE STYLE GUIDE ===\n{style_guide}\n=== END STYLE GUIDE ===\n"
        if style_guide else ""
    )
    messages = SOCIAL_PROMPT.format_messages(
        language=language,
        platform=platform,
        tone=tone,
        city=city,
        length_hint=_CAPTION_LENGTHS.get(length, ""),
        style_guide_block=style_guide_block,
        brand=brand or "N/A",
        cuisine=cuisine or "N/A",
        special=special or "N/A",
        prompt=prompt,
        mode=mode,
    )
    return _complete(messages, temperature=0.8, max_tokens=2048)


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------

_RECAP_SYSTEM = """You are an operations analyst for a small restaurant.
Return a concise sales RECAP for the specified period.
Focus on:
- Total revenue / avg ticket (if given or can be inferred)
- Daily/weekly patterns and top items (if given)
- Notable spikes/dips and plausible causes
- 3 bullet recommendations for today

Tone: crisp, practical, no fluff."""

_FORECAST_SYSTEM = """You are an operations analyst for a small restaurant.
Return a concise short-range FORECAST for the next 1-7 days using the provided context.
Include:
- A one-paragraph outlook with rationale
- A small bullet list of staffing/ordering suggestions
- 2 risks to watch

Tone: crisp, practical, no fluff."""

_RECAP_FORMAT = """# Sales Recap ({period})
- Summary:
- Patterns:
- Spikes/Dips:
- Recommendations (3 bullets):"""

_FORECAST_FORMAT = """# Sales Forecast (Next 1-7 days)
- Outlook:
- Suggestions (staffing/ordering):
- Risks:"""


def generate_sales_report(task: str, period: str, data: str = "", notes: str = "") -> str:
    """Recap or forecast text for the quick sales tool."""
    system = _RECAP_SYSTEM if task == "recap" else _FORECAST_SYSTEM
    user = "\n".join([
        f"Task: {task.upper()}",
        f"Period: {period}",
        f"Sales/Context Data:\n{data}" if data else "Sales/Context Data: (none)",
        f"Owner Notes:\n{notes}" if notes else "Owner Notes: (none)",
        "",
        "Output format:",
        _RECAP_FORMAT.format(period=period) if task == "recap" else _FORECAST_FORMAT,
    ])
    messages = [("system", system), ("human", user)]
    return _complete(messages, temperature=0.5) or "No response returned."


def summarize_sales(system: str, user: str) -> str:
    return _complete([("system", system), ("human", user)], temperature=0.4)


RECAP_PROMPT = ChatPromptTemplate.from_messages([
    ("system", """You are an operator-minded restaurant analyst.
Write concise, practical summaries for small cafes and coffee shops.
Write the entire output in {language}. Avoid fluff and give clear next actions."""),
    ("human", """Store: {store}   City: {city}
Period: {period_start} -> {period_end}

Raw metrics (may be partial):
{metrics}

Client-computed KPIs (if available):
{computed}

Top items: {top_items}
Notes/context: {notes}
Upcoming promo: {upcoming_promo}
Goal for next period: {goal}

Optional POS paste:
{raw_paste}

TASKS:
1) Sales Recap (3-6 bullet points): highs/lows, AOV, margin/labor signals, anomalies.
2) Simple KPI table: Net Sales, Orders, AOV, Refunds $, Gross Margin %, Labor %, any other obvious.
3) 7-Day Forecast (table): day-of-week, low/mid/high sales bands, expected orders, quick note.
4) Staffing & Ordering Tips (3-5 bullets) tied to the forecast.
5) One-line Owner Takeaway (crisp, action-oriented)."""),
])


def generate_sales_recap(
    metrics: dict,
    computed: dict,
    store: str = "",
    city: str = "",
    period_start: str = "",
    period_end: str = "",
    top_items: str = "",
    notes: str = "",
    upcoming_promo: str = "",
    goal: str = "",
    raw_paste: str = "",
    language: str = "English",
) -> str:
    metric_lines = "\n".join(f"- {label}: {_display(value)}" for label, value in metrics.items())
    messages = RECAP_PROMPT.format_messages(
        language=language,
        store=store or "N/A",
        city=city or "N/A",
        period_start=period_start or "N/A",
        period_end=period_end or "N/A",
        metrics=metric_lines,
        computed=json.dumps(computed or {}, indent=2, default=str),
        top_items=top_items or "N/A",
        notes=notes or "N/A",
        upcoming_promo=upcoming_promo or "N/A",
        goal=goal or "N/A",
        raw_paste=f"```{raw_paste}```" if raw_paste else "N/A",
    )
    return _complete(messages, temperature=0.5, max_tokens=2048)


def _display(value) -> str:
    if value is None or value == "":
        return "N/A"
    return str(value)
