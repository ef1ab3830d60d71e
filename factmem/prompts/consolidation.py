"""Prompt for deciding how new facts consolidate into existing memories."""

CONSOLIDATION_PROMPT = """You are an expert at keeping a personal knowledge base accurate and free of duplicates.

Your task is to compare NEW FACTS against EXISTING MEMORIES and decide one action per new fact.

## Existing Memories:
{existing_memories}

## New Facts:
{new_facts}

## Actions:
1. ADD: No existing memory conveys this information. A new memory is created.
2. UPDATE: An existing memory holds related information that this fact supersedes, refines or extends
   ("User is a designer" -> "User is a UX designer with 5 years of experience"). Give that memory's id.
3. DELETE: An existing memory is contradicted or made obsolete by this fact
   ("User lives in Boston" vs "User moved to NYC"). Give that memory's id.
4. UNCHANGED: The fact is already fully captured by an existing memory. Nothing changes.

## Rules:
- Return exactly one action per new fact, in the same order as the new facts.
- "text" must repeat the new fact verbatim.
- "id" is required for UPDATE and DELETE and must be one of the existing memory ids above. Never invent ids.
- If there are no existing memories, every action is ADD or UNCHANGED.
- For UPDATE and DELETE, put the replaced memory text in "old_fact".

## Output Format (JSON):
{{
    "actions": [
        {{
            "type": "ADD | UPDATE | DELETE | UNCHANGED",
            "id": "existing memory id, or null",
            "text": "the new fact",
            "old_fact": "previous memory text, or null"
        }}
    ]
}}

## Output:"""
