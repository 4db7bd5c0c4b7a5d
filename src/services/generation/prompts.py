"""Prompt templates for the authoring workflows"""

from typing import Optional, Sequence

API_KEY_TEST_PROMPT = "Hello"

BRAINSTORM_TEMPLATE = """You are a bestselling ebook author and publishing expert. Generate 5 compelling, marketable book titles and a detailed chapter outline for a book about: {topic}

Requirements:
- Titles should be attention-grabbing and marketable
- Outline should have 8-12 chapters with descriptive titles
- Each chapter should have 3-5 section topics
- Focus on practical, actionable content
- Consider SEO and keyword optimization

Return your response as JSON with this exact structure:
{{
  "titles": ["Title 1", "Title 2", "Title 3", "Title 4", "Title 5"],
  "outline": {{
    "title": "Main Book Title",
    "subtitle": "Compelling Subtitle",
    "chapters": [
      {{
        "number": 1,
        "title": "Chapter Title",
        "sections": ["Section 1", "Section 2", "Section 3"]
      }}
    ]
  }}
}}"""

IMPROVE_OUTLINE_TEMPLATE = """You are a bestselling author and book structure expert. Analyze and improve this book outline to make it more comprehensive, engaging, and marketable.

Current Outline:
{outline}

Instructions:
- Enhance chapter titles to be more compelling and specific
- Add missing chapters that would strengthen the book
- Improve the logical flow and progression
- Add 3-5 section topics under each chapter
- Ensure the structure appeals to readers and provides clear value
- Maintain the core topic and intent
- Return the improved outline in a clear, structured format

Provide the enhanced outline:"""

CHAPTER_TEMPLATE = """You are a professional author writing Chapter {number} of a book.

Chapter Details:
- Title: "{title}"
- Target word count: {word_count} words
- Tone: {tone}
- Audience: {audience}

Book Context:
{outline}

Instructions:
- Write a complete, engaging chapter that fits within the overall book structure
- Include practical examples, actionable advice, and clear explanations
- Use subheadings to organize content (H3 and H4 levels)
- Ensure the chapter flows well and provides real value
- Write in Markdown format
- Start with the chapter title as H2: ## Chapter {number}: {title}

Generate the complete chapter content now."""

EBOOK_TEMPLATE = """You are a professional ghostwriter and bestselling author. Write a complete, detailed ebook on the topic: {topic}.

Requirements:
- Target word count: {word_count} words
- {tone_instruction}
- Target audience: {audience}
- Include: Title Page, Table of Contents, Introduction, Multiple Chapters (8-15), Conclusion, Resources/References
- Format in clean Markdown with proper heading structure
- Use H1 for main title, H2 for major sections, H3 for chapters
- Write engaging, valuable content that provides real insights
- Include practical examples, actionable advice, and clear explanations
- Ensure content flows logically from chapter to chapter{outline_section}

Generate the complete ebook content now in Markdown format."""

HUMANIZE_TEMPLATE = """You are an expert editor specializing in making AI-generated content sound more natural and human-written. Transform this content through a comprehensive humanization process:

CONTENT TO HUMANIZE:
{content}

HUMANIZATION REQUIREMENTS:
1. STRUCTURAL REWRITE: Vary sentence lengths, merge short sentences, break up long ones
2. LEXICAL IMPROVEMENTS: Replace AI cliches and robotic phrases with natural language
3. PERSONALITY INJECTION: Add contractions, personal touches, conversational elements
4. FLOW ENHANCEMENT: Improve transitions and logical connections between ideas

BANNED AI PHRASES TO REPLACE:
- "delve into" -> "explore" or "examine"
- "leverage" -> "use" or "apply"
- "tapestry" -> "mix" or "blend"
- "navigate" -> "handle" or "manage"
- "robust" -> "strong" or "solid"
- "pivotal" -> "key" or "important"
- "moreover" -> "also" or "plus"
- "furthermore" -> "what's more" or "additionally"

STYLE GUIDELINES:
- Use contractions (don't, can't, it's, you're)
- Add occasional rhetorical questions
- Include personal pronouns (you, we, I)
- Vary paragraph lengths
- Use active voice over passive
- Add transitional phrases that sound natural

Return the fully humanized content that reads as if written by a skilled human author."""

FALLBACK_TITLE_TEMPLATES: Sequence[str] = (
    "The Complete Guide to {topic}",
    "Mastering {topic}: A Practical Approach",
    "{topic} for Beginners and Experts",
    "The Ultimate {topic} Handbook",
    "Transform Your Life with {topic}",
)


def brainstorm_prompt(topic: str) -> str:
    return BRAINSTORM_TEMPLATE.format(topic=topic)


def improve_outline_prompt(outline: str) -> str:
    return IMPROVE_OUTLINE_TEMPLATE.format(outline=outline)


def chapter_prompt(
    title: str, number: int, outline: str, tone: str, audience: str, word_count: int
) -> str:
    return CHAPTER_TEMPLATE.format(
        title=title, number=number, outline=outline,
        tone=tone, audience=audience, word_count=word_count,
    )


def ebook_prompt(
    topic: str,
    word_count: int,
    tone: str,
    audience: str,
    outline: Optional[str] = None,
    custom_tone: Optional[str] = None
) -> str:
    if tone == "custom" and custom_tone:
        tone_instruction = f"Writing style: {custom_tone}"
    else:
        tone_instruction = f"Tone: {tone}"
    outline_section = f"\n\nUse this outline as your structure:\n{outline}" if outline else ""
    return EBOOK_TEMPLATE.format(
        topic=topic, word_count=word_count, tone_instruction=tone_instruction,
        audience=audience, outline_section=outline_section,
    )


def humanize_prompt(content: str) -> str:
    return HUMANIZE_TEMPLATE.format(content=content)


def fallback_titles(topic: str):
    return [template.format(topic=topic) for template in FALLBACK_TITLE_TEMPLATES]
