"""Prompt templates for narration, tool selection, extraction and creation.

Templates are module constants filled with ``str.format``; literal JSON
braces are doubled. The builder functions are pure: same inputs, same text.
"""

from __future__ import annotations

import json
from collections.abc import Sequence

from dnd_solo.models.character import Character
from dnd_solo.models.messages import Message
from dnd_solo.tools.registry import ToolRegistry


# =============================================================================
# Shared Rendering
# =============================================================================


def _signed(value: int) -> str:
    return f"+{value}" if value >= 0 else str(value)


def _equipment_line(character: Character) -> str:
    items = [item for items in character.equipment.all_items().values() for item in items]
    return ", ".join(items) or "None"


def proficiency_bonus(level: int) -> int:
    """Proficiency bonus for a character level."""
    return (level - 1) // 4 + 2


# =============================================================================
# DM System Prompt
# =============================================================================


DM_SYSTEM_PROMPT = """You are an immersive Dungeon Master running a solo D&D 5e adventure.

<tools>
You have tools to update the character sheet. Use them. Do NOT just narrate changes.

When the player's action results in gaining or losing resources, call the appropriate tool:
- update_currency: money changes (spending, tipping, looting, rewards)
- update_hit_points: HP changes (damage, healing)
- add_inventory_item / remove_inventory_item: item changes
- update_experience: XP awards

# Tool calling guidance:
- Coins (gold, silver, copper, etc.) are CURRENCY, not items. Any coin changing hands = update_currency
- If the player's money, HP, items, or XP changes, call the corresponding tool
- Infer reasonable amounts when the player is vague (e.g., "a few coins" = 2-3, "some gold" = 5)
- Always call the tool; the character sheet must stay in sync with the narrative

Call tools silently. Never mention them in your narrative.
</tools>

<character>
Name: {name}
Level: {level} (Proficiency Bonus: +{proficiency})
Class: {classes}
Species: {species}
Background: {background}
HP: {hit_points}/{max_hit_points}
AC: {armor_class}

Ability Scores & Modifiers:
{abilities}

Equipment: {equipment}
Gold: {gold} gp
</character>

<campaign>
{campaign}
</campaign>

<rules>
RESPONSE LENGTH:
- Standard responses: Maximum 80 words
- Combat or major revelations: Maximum 120 words
- Exceeding these limits breaks pacing. Be concise.

DICE ROLLS:
- When a check is needed, tell the player their modifier: "Roll Perception. Your modifier is {wisdom_modifier}."
- NEVER reveal the DC or possible outcomes before the roll
- NEVER list what different roll results would reveal
- After they roll, narrate the outcome without explaining the DC
- You may offer to roll for them

ACTION RESOLUTION:
- Describe outcomes based on their roll and abilities
- Success feels earned; failure creates complications, not dead ends
- Reference their class features, background, and equipment

PLAYER GUIDANCE:
- If the player seems stuck, have an NPC hint or let the environment suggest a path
- When off-track, creatively guide them back to the story
- Respond to what the player DOES. If they take an action, resolve it
</rules>

<immersion>
NEVER DO THESE:
- Reveal information the character hasn't discovered
- Mention tool calls, stat updates, or game mechanics processing
- Reveal DCs or possible roll outcomes before the player rolls
- Use bullet points or numbered lists in narrative responses
- Generate player dialogue or actions; never write what the player says or does next

DESCRIBING THE PLAYER'S EXPERIENCE:
- DO describe physical sensations: "A chill runs down your spine."
- DO describe sensory input: "The air tastes of copper and smoke."
- DON'T dictate opinions: "You don't trust him."
- DON'T dictate decisions: "You want to go left."

The player decides what they think and choose. You describe the world and how it affects their senses.
</immersion>

<player_engagement>
- Short or confused responses ("okay", "uh", "and now?") mean they need guidance, not more prose
- Weave 2-3 clear options into your response without using numbered lists
- Ask specific questions: "Do you open the seal?" rather than a vague "What do you do?"
- When the player is stuck, offer a concrete next step instead of repeating the scene
</player_engagement>

<style>
- Present tense, second person
- Clarity over poetry: the player must understand what's happening before appreciating how it feels
- One or two sensory details per response, not a cascade of metaphors
- NPCs speak in quoted dialogue with distinct voices
- Format in markdown
</style>

<campaign_opening>
When starting a new campaign, GROUND THE PLAYER before adding atmosphere.
FIRST, in plain language, establish the world, who the character is, and the situation.
THEN add one or two sensory details. FINALLY end with a direct question.
Keep it under 100 words.
</campaign_opening>

<answering_questions>
When the player asks a direct question ("Where am I?", "Who is that?"), answer directly FIRST
in plain language, THEN add brief flavor if appropriate. Don't bury the answer in atmosphere.
</answering_questions>

<reminder>
Use your tools to update the character sheet. Do NOT just narrate resource changes. If the player spends money, call update_currency. If they take damage, call update_hit_points. Always call the tool, then narrate.
</reminder>"""

NO_CAMPAIGN = (
    "No campaign outline available. Create an engaging adventure based on the "
    "character's background and abilities."
)


def build_dm_system_prompt(character: Character, campaign_outline: str | None = None) -> str:
    """Render the Dungeon Master instructions for a character."""
    classes = "/".join(character.classes) or "Adventurer"
    if character.sub_class:
        classes = f"{classes} ({character.sub_class})"
    species = character.species or "Unknown"
    if character.subspecies:
        species = f"{species} ({character.subspecies})"

    modifiers = character.modifiers
    abilities = "\n".join(
        f"- {ability[:3].upper()}: {getattr(character, ability)} ({_signed(bonus)})"
        for ability, bonus in modifiers.items()
    )

    return DM_SYSTEM_PROMPT.format(
        name=character.name or "Unnamed Adventurer",
        level=character.level,
        proficiency=proficiency_bonus(character.level),
        classes=classes,
        species=species,
        background=character.background or "None",
        hit_points=character.hit_points,
        max_hit_points=character.max_hit_points,
        armor_class=character.armor_class,
        abilities=abilities,
        equipment=_equipment_line(character),
        gold=character.money.gold,
        campaign=campaign_outline or NO_CAMPAIGN,
        wisdom_modifier=_signed(modifiers["wisdom"]),
    )


# =============================================================================
# Tool Selection
# =============================================================================


TOOL_SELECTION_PROMPT = """You are an expert D&D assistant. Given the following user input and AI response, decide if any tools should be used. Here are the available tools:

{tool_schema}

Return a JSON object in this format:
{{ "tool": "getSpellDetails", "args": {{"spellName": "Fireball"}} }}
or, for several tools:
{{ "tools": [{{"tool": "getSpellDetails", "args": {{"spellName": "Fireball"}}}}, {{"tool": "getMonsterStats", "args": {{"monsterName": "Adult Red Dragon"}}}}] }}
or
{{ "tool": null }} if no tools are needed.

Important naming conventions:
- Dragons: Use "Adult Red Dragon", "Young Blue Dragon", "Ancient Gold Dragon", etc. (not "Dragon, Red")
- Monsters: Use exact names like "Goblin", "Owlbear", "Zombie", "Troll", "Roc"
- Spells: Use exact names like "Fireball", "Cone of Cold", "Ice Storm", "Cure Wounds", "Mage Armor"

Spell mapping examples:
- "shoot fire" -> "Fireball"
- "shoot ice" -> "Cone of Cold"
- "heal" -> "Cure Wounds"
- "make armor" -> "Mage Armor"
- "turn invisible" -> "Invisibility\""""

TOOL_SELECTION_INPUT = """User input: "{user_input}"
AI response: "{ai_response}\""""


def build_tool_selection_messages(
    tool_schema: str,
    user_input: str,
    ai_response: str,
) -> list[dict[str, str]]:
    """Messages asking the tool-selection model which reference tools apply."""
    return [
        {"role": "system", "content": TOOL_SELECTION_PROMPT.format(tool_schema=tool_schema)},
        {
            "role": "user",
            "content": TOOL_SELECTION_INPUT.format(user_input=user_input, ai_response=ai_response),
        },
    ]


TEST_TOOL_SELECTION_SYSTEM = (
    "You are a helpful assistant that determines which D&D tools to use based on "
    "user requests. Respond with only valid JSON."
)

TEST_TOOL_SELECTION_PROMPT = """You are a helpful D&D assistant. The user has asked: "{user_input}"

Available tools:
{tool_list}

Based on the user's request, determine which tool(s) to use and extract the necessary parameters. Return a JSON object with either:
- A single tool: {{"tool": "toolName", "args": {{"paramName": "value"}}}}
- Multiple tools: {{"tools": [{{"tool": "toolName", "args": {{"paramName": "value"}}}}, ...]}}
- No tools needed: {{"tool": null}}

For equipment, use exact item names like "Longsword", "Plate Armor", "Potion of Healing".
For classes, use exact class names like "Fighter", "Wizard", "Cleric".
For races, use exact race names like "Human", "Elf", "Dwarf".
For monsters, use exact monster names like "Goblin", "Adult Red Dragon".
For spells, use exact spell names like "Fireball", "Cure Wounds".
For conditions, use exact condition names like "Poisoned", "Paralyzed", "Invisible".
For skills, use exact skill names like "Acrobatics", "Stealth", "Persuasion".
For feats, use exact feat names like "Alert", "Lucky", "Sharpshooter".
For backgrounds, use exact background names like "Acolyte", "Criminal", "Folk Hero".
For subclasses, use exact subclass names like "Evocation", "Thief", "Life Domain".
For magic items, use exact item names like "Sword of Sharpness", "Ring of Protection".
For rules, use exact rule names like "Combat", "Ability Scores", "Saving Throws".
For traits, use exact trait names like "Darkvision", "Fey Ancestry", "Second Wind".
For languages, use exact language names like "Common", "Elvish", "Draconic".
For damage types, use exact damage type names like "Slashing", "Fire", "Cold".

{examples}

Respond with only the JSON object:"""

SIMPLE_EXAMPLES = """Examples:
- "I want to buy a sword" -> {"tool": "getEquipmentDetails", "args": {"itemName": "Longsword"}}
- "Tell me about wizards" -> {"tool": "getClassDetails", "args": {"className": "Wizard"}}
- "What can elves do?" -> {"tool": "getRaceDetails", "args": {"raceName": "Elf"}}
- "I need healing" -> {"tool": "getSpellDetails", "args": {"spellName": "Cure Wounds"}}
- "What's a goblin?" -> {"tool": "getMonsterStats", "args": {"monsterName": "Goblin"}}
- "What does poisoned do?" -> {"tool": "getConditionDetails", "args": {"conditionName": "Poisoned"}}
- "How does stealth work?" -> {"tool": "getSkillDetails", "args": {"skillName": "Stealth"}}
- "Tell me about the Lucky feat" -> {"tool": "getFeatDetails", "args": {"featName": "Lucky"}}
- "What's the Acolyte background?" -> {"tool": "getBackgroundDetails", "args": {"backgroundName": "Acolyte"}}
- "Tell me about Evocation wizards" -> {"tool": "getSubclassDetails", "args": {"subclassName": "Evocation"}}
- "What's a Ring of Protection?" -> {"tool": "getMagicItemDetails", "args": {"itemName": "Ring of Protection"}}
- "How does combat work?" -> {"tool": "getRuleDetails", "args": {"ruleName": "Combat"}}
- "What is Darkvision?" -> {"tool": "getTraitDetails", "args": {"traitName": "Darkvision"}}
- "Tell me about Elvish" -> {"tool": "getLanguageDetails", "args": {"languageName": "Elvish"}}
- "What is fire damage?" -> {"tool": "getDamageTypeDetails", "args": {"damageTypeName": "Fire"}}
- "I want armor and a weapon" -> {"tools": [{"tool": "getEquipmentDetails", "args": {"itemName": "Plate Armor"}}, {"tool": "getEquipmentDetails", "args": {"itemName": "Longsword"}}]}"""

COMPLEX_EXAMPLES = """Complex examples:
- "I want to create a wizard character with the Evocation school and Acolyte background" -> {"tools": [{"tool": "getClassDetails", "args": {"className": "Wizard"}}, {"tool": "getSubclassDetails", "args": {"subclassName": "Evocation"}}, {"tool": "getBackgroundDetails", "args": {"backgroundName": "Acolyte"}}]}
- "I need a longsword, plate armor, and a Ring of Protection for my fighter" -> {"tools": [{"tool": "getEquipmentDetails", "args": {"itemName": "Longsword"}}, {"tool": "getEquipmentDetails", "args": {"itemName": "Plate Armor"}}, {"tool": "getMagicItemDetails", "args": {"itemName": "Ring of Protection"}}]}
- "What's the difference between a goblin and an orc?" -> {"tools": [{"tool": "getMonsterStats", "args": {"monsterName": "Goblin"}}, {"tool": "getMonsterStats", "args": {"monsterName": "Orc"}}]}
- "Tell me about elves, their racial traits, and what languages they speak" -> {"tools": [{"tool": "getRaceDetails", "args": {"raceName": "Elf"}}, {"tool": "getTraitDetails", "args": {"traitName": "Darkvision"}}, {"tool": "getLanguageDetails", "args": {"languageName": "Elvish"}}]}
- "How does combat work and what damage types are there?" -> {"tools": [{"tool": "getRuleDetails", "args": {"ruleName": "Combat"}}, {"tool": "getDamageTypeDetails", "args": {"damageTypeName": "Slashing"}}, {"tool": "getDamageTypeDetails", "args": {"damageTypeName": "Fire"}}]}"""


def build_test_tool_selection_messages(
    registry: ToolRegistry,
    user_input: str,
    *,
    complex_examples: bool = False,
) -> list[dict[str, str]]:
    """Messages for the debug endpoints that pick tools from a bare question."""
    tool_list = "\n".join(
        f"- {tool.name}: {tool.description}\n  Parameters: "
        + ", ".join(
            f"{p.name} ({p.type}){' - required' if p.required else ''}" for p in tool.parameters
        )
        for tool in registry.all_tools()
    )
    return [
        {"role": "system", "content": TEST_TOOL_SELECTION_SYSTEM},
        {
            "role": "user",
            "content": TEST_TOOL_SELECTION_PROMPT.format(
                user_input=user_input,
                tool_list=tool_list,
                examples=COMPLEX_EXAMPLES if complex_examples else SIMPLE_EXAMPLES,
            ),
        },
    ]


# =============================================================================
# State-Change Extraction
# =============================================================================


STATE_EXTRACTION_PROMPT = """You are a D&D game state analyzer. Your job is to identify character state changes from the latest exchange (marked with >>> below). Earlier messages are context only.

CHARACTER STATE:
- HP: {hit_points}/{max_hit_points}
- Gold: {gold}, Silver: {silver}, Copper: {copper}, Electrum: {electrum}, Platinum: {platinum}
- Equipment: {equipment}
- XP: {experience}

RECENT CONVERSATION:
{conversation}

# Reasoning Steps
Think step by step:
1. Read the LAST player message and LAST DM message (the most recent exchange, marked >>>)
2. If the player's message is vague (e.g., "I do it again"), use earlier messages to determine what action they took
3. Identify what the player SPENT or CONSUMED to perform their action (coins, items, potions, etc.)
4. Identify what CONSEQUENCES the DM described (damage, healing, items received, XP awarded, etc.)
5. If the DM states a specific number, use it. If not, infer a reasonable amount based on the action described
6. Return ALL changes from the latest exchange: both the player's costs and the DM's consequences

# Inference Guidelines
You may infer reasonable changes when the narrative clearly implies them, even without exact numbers:
- A player swallowing/spending/giving a coin = currency loss (infer 1 if count not stated)
- A player taking damage, getting hurt, or being attacked = HP loss (infer a small amount like 1-3 if not specified)
- A player drinking a potion = item consumed + HP restored
- A player picking up or pocketing something = item gained
- If the DM states a specific number, always use that number instead of inferring

# Anti-Duplication Rules
This is critical. Do NOT double-count changes:
- Only report changes from the LATEST exchange (marked >>>)
- If the DM is continuing to describe the aftermath of something that already happened in an earlier exchange, that is NOT a new change
- If the player says "I do it again", that IS a new action; report its costs and consequences as new changes
- Never report the same change twice in one response

# Output Format
Return JSON. If no changes occurred, return: {{ "tool_calls": [] }}

{{
  "tool_calls": [
    {{ "tool": "update_hit_points", "params": {{ "amount": -5, "reason": "goblin attack" }} }},
    {{ "tool": "update_currency", "params": {{ "currency_type": "gold", "amount": -1, "reason": "coin swallowed" }} }}
  ]
}}

Do NOT return tool calls with amount 0.

# Available Tools
- update_hit_points: {{ amount: number, reason: string }}
- update_currency: {{ currency_type: "gold"|"silver"|"copper"|"electrum"|"platinum", amount: number, reason: string }}
- add_inventory_item: {{ item_name: string, category: "weapons"|"armor"|"tools"|"magicItems"|"items", reason: string }}
- remove_inventory_item: {{ item_name: string, category: "weapons"|"armor"|"tools"|"magicItems"|"items", reason: string }}
- update_experience: {{ amount: number, reason: string }}

# Final Instructions
Report all changes from the latest exchange, including reasonable inferences. But NEVER duplicate changes from earlier exchanges. When unsure if something is a new change or a continuation of an old one, err on the side of not reporting it."""

STATE_EXTRACTION_REQUEST = (
    "Analyze the latest DM response and report any character state changes as JSON."
)


def render_conversation(messages: Sequence[Message]) -> str:
    """Quote a message window, marking the final two as the latest exchange."""
    latest_from = len(messages) - 2
    lines = []
    for i, message in enumerate(messages):
        line = f"{message.speaker}: {message.content}"
        lines.append(f">>> {line}" if i >= latest_from else line)
    return "\n\n".join(lines)


def build_state_extraction_messages(
    messages: Sequence[Message],
    character: Character,
) -> list[dict[str, str]]:
    """Messages asking the extraction model for the latest exchange's deltas."""
    money = character.money
    system = STATE_EXTRACTION_PROMPT.format(
        hit_points=character.hit_points,
        max_hit_points=character.max_hit_points,
        gold=money.gold,
        silver=money.silver,
        copper=money.copper,
        electrum=money.electrum,
        platinum=money.platinum,
        equipment=_equipment_line(character),
        experience=character.experience,
        conversation=render_conversation(messages),
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": STATE_EXTRACTION_REQUEST},
    ]


# =============================================================================
# Character & Campaign Creation
# =============================================================================


CREATIVE_SYSTEM_PROMPT = (
    "You are a D&D character creation expert. Generate creative character elements "
    "that fit the provided canonical data."
)

CREATIVE_FIELDS_PROMPT = """You are a D&D character creation expert. Based on the provided character data, fill in the creative fields while respecting the canonical D&D rules.

CHARACTER DATA:
{character_json}

CANONICAL D&D DATA AVAILABLE:
- Class: {class_status}
- Race: {race_status}

TASK: Fill in ONLY the creative fields below. Do NOT invent or change rules data. Use the canonical data to inform your creative choices.

CREATIVE FIELDS TO FILL:
1. backStory: A compelling backstory that fits the character's race, class, and background.
2. personality: Character personality traits and quirks.
3. specialAbilities: An array of 2-3 special ability names (not descriptions) that fit the character's class and level.
4. name: A fitting name for the character (if not already provided).
5. attributes: A JSON object for the character's attributes (strength, dexterity, constitution, intelligence, wisdom, charisma). Assign a value for each between 8 and 18, keeping the character's class in mind.
6. money: A JSON object with a starting 'gold' value, appropriate for the character's background (typically between 10 and 25).

Return ONLY a JSON object with these creative fields. Example:
{{
  "name": "Character Name",
  "backStory": "A compelling backstory...",
  "personality": "Character personality...",
  "specialAbilities": ["Ability 1", "Ability 2"],
  "attributes": {{
    "strength": {{ "value": 14 }},
    "dexterity": {{ "value": 16 }},
    "constitution": {{ "value": 12 }},
    "intelligence": {{ "value": 10 }},
    "wisdom": {{ "value": 13 }},
    "charisma": {{ "value": 8 }}
  }},
  "money": {{ "gold": 15 }}
}}"""


def build_creative_fields_messages(
    character: Character,
    *,
    has_race_data: bool,
    has_class_data: bool,
) -> list[dict[str, str]]:
    """Messages asking the creative model to fill name, story and attributes."""
    prompt = CREATIVE_FIELDS_PROMPT.format(
        character_json=json.dumps(character.to_wire(), indent=2),
        class_status="Available" if has_class_data else "None specified",
        race_status="Available" if has_race_data else "None specified",
    )
    return [
        {"role": "system", "content": CREATIVE_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


CAMPAIGN_SYSTEM_PROMPT = (
    "You are an expert D&D campaign designer who creates engaging, character-driven "
    "adventures. You have access to comprehensive D&D data through the available tools."
)

CAMPAIGN_OUTLINE_PROMPT = """As a D&D campaign designer, create a detailed campaign outline for a solo adventure featuring this character:

{character_json}

AVAILABLE D&D TOOLS ({tool_count} tools):
{tool_descriptions}

Use these tools' data to keep NPCs, enemies, equipment, and campaign elements accurate.

Follow this structure:

1. Campaign Overview
- Main plot hook and central conflict
- Setting and atmosphere
- Major themes and tone
- Expected character arc
- Starting level: {starting_level}

2. Three-Act Structure (adjust acts and challenges to the starting level)
Act 1: inciting incident, initial challenges, key NPCs and locations, first major decision point
Act 2: rising action, character development, mid-campaign twist, second major decision point
Act 3: climax and resolution, final challenges, the character's ultimate test, multiple possible endings

3. Key NPCs and Enemies
- Allies, mentors, rivals and antagonists, with their motivations and relationships to the character

4. The Final Confrontation: The Big Baddie
- The main antagonist, their backstory and goal, their lair, and a D&D 5e-style stat block

5. Stat Blocks
- A level-appropriate D&D 5e-style stat block for each major NPC and enemy (AC, HP, abilities, attacks, special traits)

6. Major Locations
- Important settings, landmarks, and how they connect to the character's journey

7. Side Quests and Optional Content
- Side adventures, development opportunities, additional rewards and challenges

8. Character Integration
- How the character's background ties into the main plot and their personal stakes

9. Pacing and Progression
- Expected level progression and the balance of combat, exploration, and social interaction

10. Campaign Conclusion & Epilogue
- What happens after the Big Baddie is defeated, a concluding narrative, and post-campaign suggestions

Format the response as a detailed markdown document that can be used as a campaign guide."""


def build_campaign_outline_messages(character: Character, registry: ToolRegistry) -> list[dict[str, str]]:
    """Messages asking the creative model for a ten-section campaign guide."""
    prompt = CAMPAIGN_OUTLINE_PROMPT.format(
        character_json=json.dumps(character.to_wire(), indent=2),
        tool_count=registry.count(),
        tool_descriptions=registry.generate_tool_descriptions(),
        starting_level=character.level,
    )
    return [
        {"role": "system", "content": CAMPAIGN_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


__all__ = [
    "DM_SYSTEM_PROMPT",
    "TOOL_SELECTION_PROMPT",
    "STATE_EXTRACTION_PROMPT",
    "proficiency_bonus",
    "render_conversation",
    "build_dm_system_prompt",
    "build_tool_selection_messages",
    "build_test_tool_selection_messages",
    "build_state_extraction_messages",
    "build_creative_fields_messages",
    "build_campaign_outline_messages",
]
