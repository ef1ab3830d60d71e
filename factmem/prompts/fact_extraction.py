"""Prompt for extracting atomic facts from user input."""

FACT_EXTRACTION_PROMPT = """You are an expert at extracting factual information about a user from what they say.

## Input:
{input_text}

## What to Extract:
- Personal characteristics and preferences
- Plans, goals and activities
- Key information about the user
- Clear, actionable facts

## Instructions:
1. Each fact is a short, self-contained statement that makes sense on its own
2. Split compound statements into independent facts
3. Do not add anything the input does not say
4. If the input carries no factual content, return an empty list

## Output Format (JSON):
{{
    "facts": ["fact 1", "fact 2"]
}}

## Output:"""
