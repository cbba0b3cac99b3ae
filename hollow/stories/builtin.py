"""
Built-in Stories

The Eden's Hollow anthology, hand-authored in code.

Each story defines:
- Passages (text, phase, presentation hints)
- Choices (targets, effects, gates, critical markers)
- The ending set
"""

from __future__ import annotations

from ..story_schema.effect_dsl import flag, give, sanity, sound, take, var
from ..story_schema.story import Choice, Passage, Story, StoryPhase, TextVariant
from .repository import StoryRepository

MANOR_ID = "the-abandoned-manor"
LIGHTHOUSE_ID = "the-forgotten-lighthouse"


def create_default_repository() -> StoryRepository:
    """Repository holding every built-in story."""
    return StoryRepository.from_stories([
        create_abandoned_manor(),
        create_forgotten_lighthouse(),
    ])


def _passage(passage_id: str, paragraphs: list[str], choices: list[Choice], **kwargs) -> Passage:
    return Passage(
        passage_id=passage_id,
        text="\n\n".join(paragraphs),
        choices=tuple(choices),
        **kwargs,
    )


def _choice(choice_id: str, text: str, target: str, *effects, **gates) -> Choice:
    if "requires_items" in gates:
        gates["requires_items"] = frozenset(gates["requires_items"])
    return Choice(
        choice_id=choice_id,
        text=text,
        next_passage_id=target,
        effects=tuple(effects),
        **gates,
    )


# =============================================================================
# The Abandoned Manor
# =============================================================================

def create_abandoned_manor() -> Story:
    """Blackthorn Manor: the grandfather's death."""
    passages = [
        *_manor_approach(),
        *_manor_interior(),
        *_manor_depths(),
        *_manor_endings(),
    ]
    return Story(
        story_id=MANOR_ID,
        title="THE ABANDONED MANOR",
        author="Eden's Hollow",
        description="You've come seeking answers about your grandfather's mysterious death.",
        start_passage_id="manor-intro",
        passages={p.passage_id: p for p in passages},
        ending_passage_ids=frozenset({
            "manor-flee-early",
            "manor-ending-truth",
            "manor-ending-fire",
            "manor-ending-madness",
        }),
    )


def _manor_approach() -> list[Passage]:
    return [
        _passage(
            "manor-intro",
            [
                "The rain beats down upon the rusted gates of Blackthorn Manor. Lightning "
                "illuminates the decrepit Gothic architecture, a silhouette of jagged "
                "spires against the thunderous sky.",
                "You've come seeking answers about your grandfather's mysterious death. "
                "The letter in your pocket feels heavy, its weathered edges carrying "
                "secrets you've yet to decipher.",
                "The rain grows heavier as you approach the entrance. A strange sensation "
                "washes over you: the unmistakable feeling of being watched.",
            ],
            [
                _choice("front-door", "Approach the front door and knock firmly.",
                        "manor-front-door", sanity(-5)),
                _choice("find-another-way",
                        "Look for another way in, perhaps through a broken window or "
                        "servant's entrance.",
                        "manor-alternate-entrance", sanity(-10)),
                _choice("listen-whispers", "Listen for whispers in the wind before deciding.",
                        "manor-whispers", sanity(5), min_sanity=90),
            ],
            title="THE ABANDONED MANOR",
            phase=StoryPhase.INTRO,
            background="manor-gates",
            music="storm",
        ),
        _passage(
            "manor-front-door",
            [
                "Your knuckles rap against the ancient wood, echoing through what must be "
                "a vast entrance hall beyond. The sound seems to disturb something; a "
                "rustling of movement from within.",
                "Moments pass. Just as you raise your hand to knock again, the door creaks "
                "open by itself, revealing an inch of impenetrable darkness.",
                "No one greets you. Only a chill draft escapes from inside, carrying the "
                "faint scent of decay and something else... something chemical.",
            ],
            [
                _choice("enter-manor", "Step inside and announce your presence.",
                        "manor-entrance-hall", sanity(-5)),
                _choice("call-out", "Remain outside and call out for anyone inside.",
                        "manor-call-out"),
                _choice("force-door", "Push the door open forcefully, ready for anything.",
                        "manor-force-door", sanity(-15), sound("door-slam"), critical=True),
            ],
            phase=StoryPhase.INTRO,
            background="manor-door",
        ),
        _passage(
            "manor-alternate-entrance",
            [
                "You circle the manor, rain soaking through your clothes. The building "
                "looms above you, windows like vacant eyes tracking your movement.",
                "Around the east wing, you discover a cellar door, partially hidden by "
                "overgrown ivy. It's secured with a rusted padlock that looks brittle "
                "with age.",
                "Through a nearby broken window, you catch a glimpse of what appears to be "
                "a kitchen, long abandoned, with toppled furniture and scattered implements.",
            ],
            [
                _choice("break-padlock", "Break the padlock on the cellar door.",
                        "manor-cellar", sanity(-10), sound("metal-snap")),
                _choice("climb-window", "Carefully climb through the broken kitchen window.",
                        "manor-kitchen", sanity(-5)),
                _choice("return-front", "Return to the front door after all.",
                        "manor-front-door"),
            ],
            phase=StoryPhase.INTRO,
        ),
        _passage(
            "manor-whispers",
            [
                "You close your eyes, allowing your senses to extend beyond the patter of "
                "rain. At first, there's nothing but the storm's rhythm and distant thunder.",
                "Then, almost imperceptibly, voices seem to ride the wind. Not words "
                "exactly, but impressions: *danger below... not the door... window sees all...*",
                "A sudden clarity washes over you. The manor isn't just a house; it's "
                "awake somehow, and different paths through it hold different fates.",
            ],
            [
                _choice("heed-warning", "Heed the warning and seek entry through the upper floor.",
                        "manor-upper-floor", sanity(5), flag("heeded_whispers")),
                _choice("ignore-whispers",
                        "Dismiss these thoughts as nerves and approach the front door.",
                        "manor-front-door", sanity(-10)),
                _choice("flee-manor",
                        "The whispers disturb you deeply. Leave this place immediately.",
                        "manor-flee-early", sanity(-20), critical=True),
            ],
            phase=StoryPhase.INTRO,
        ),
        _passage(
            "manor-call-out",
            [
                "Your voice is swallowed by the storm. For a long moment nothing answers.",
                "Then, from somewhere deep inside, a child's laugh, thin and delighted, "
                "and the sound of small feet running away from the door.",
            ],
            [
                _choice("follow-laugh", "Follow the laughter inside.",
                        "manor-entrance-hall", sanity(-10)),
                _choice("walk-away", "Turn your back on the manor and walk to your car.",
                        "manor-flee-early", critical=True),
            ],
            phase=StoryPhase.INTRO,
        ),
        _passage(
            "manor-force-door",
            [
                "The door gives with a shriek of hinges and slams against the inner wall. "
                "The echo rolls through the house like thunder trapped indoors.",
                "Every portrait in the hall seems to turn toward the noise. Toward you.",
            ],
            [
                _choice("steady-yourself", "Steady your breathing and step into the hall.",
                        "manor-entrance-hall"),
            ],
            phase=StoryPhase.EARLY,
        ),
    ]


def _manor_interior() -> list[Passage]:
    return [
        _passage(
            "manor-entrance-hall",
            [
                "The entrance hall unfolds before you, a grand space of faded opulence. "
                "Dust-covered chandeliers hang from a vaulted ceiling, and twin staircases "
                "curve to the upper floor.",
                "Your footsteps echo against marble floors, each sound seeming to awaken "
                "the house further. Portraits line the walls, their eyes following your "
                "movement with uncanny precision.",
                "A soft click behind you: the front door has closed itself. When you try "
                "the handle, it won't budge.",
            ],
            [
                _choice("explore-ground", "Explore the ground floor rooms.",
                        "manor-ground-floor", sanity(-5)),
                _choice("climb-stairs", "Climb the grand staircase to the upper floor.",
                        "manor-upper-main", sanity(-10)),
                _choice("examine-portraits", "Examine the ancestral portraits more closely.",
                        "manor-portraits", sanity(-15), min_sanity=70),
            ],
            phase=StoryPhase.EARLY,
            background="manor-hall",
            music="hall-ambience",
            variants=(
                TextVariant(
                    text="The hall breathes. You are sure of it now: the walls swell and "
                         "settle with every step you take, and the portraits are not "
                         "watching you. They are waiting.",
                    sanity_below=40,
                ),
            ),
        ),
        _passage(
            "manor-kitchen",
            [
                "Glass crunches under your boots. Copper pots hang in a neat row above a "
                "cold iron range, untouched by the chaos around them.",
                "On the butcher's block lies a knife, its blade recently cleaned.",
            ],
            [
                _choice("take-knife", "Take the knife.",
                        "manor-ground-floor", give("kitchen-knife")),
                _choice("servant-stairs", "Climb the narrow servant's stairs.",
                        "manor-upper-main", sanity(-5)),
            ],
            phase=StoryPhase.EARLY,
        ),
        _passage(
            "manor-ground-floor",
            [
                "A corridor of closed doors stretches away from the hall. Most are locked. "
                "One, marked with your family's crest, is not locked but bolted from the "
                "inside, and a brass keyhole sits below the bolt.",
            ],
            [
                _choice("unlock-study", "Try the keyhole with the iron key.",
                        "manor-study", requires_items={"iron-key"}),
                _choice("descend-cellar", "Take the stairs down to the cellar.",
                        "manor-cellar", sanity(-5)),
                _choice("return-hall", "Return to the entrance hall.",
                        "manor-entrance-hall"),
            ],
            phase=StoryPhase.MID,
        ),
        _passage(
            "manor-upper-floor",
            [
                "You climb the ivy to a balcony whose doors stand open, curtains "
                "stirring as if someone just walked through.",
                "The whispers are quieter here, almost approving.",
            ],
            [
                _choice("enter-study-balcony", "Step through into the room beyond.",
                        "manor-study", var("entered_by", "balcony")),
            ],
            phase=StoryPhase.MID,
        ),
        _passage(
            "manor-upper-main",
            [
                "The upper landing is carpeted in dust so thick it swallows sound. Two "
                "doors: one painted with faded ducks and rabbits, one heavy and dark.",
            ],
            [
                _choice("nursery", "Open the painted door.",
                        "manor-nursery", sanity(-15), sound("music-box")),
                _choice("dark-door", "Open the heavy dark door.",
                        "manor-study", var("entered_by", "landing")),
                _choice("back-downstairs", "Go back down to the hall.",
                        "manor-entrance-hall"),
            ],
            phase=StoryPhase.MID,
        ),
        _passage(
            "manor-portraits",
            [
                "Generations of Blackthorns stare down at you. The last portrait is your "
                "grandfather, painted younger than you ever knew him.",
                "Behind his painted shoulder, barely visible, is a doorway you have not "
                "seen anywhere in this house, and in his hand an iron key.",
                "When you touch the frame, something cold drops into your palm.",
            ],
            [
                _choice("pocket-key", "Pocket the key and go upstairs.",
                        "manor-upper-main", give("iron-key"), flag("seen_portrait")),
            ],
            phase=StoryPhase.MID,
        ),
    ]


def _manor_depths() -> list[Passage]:
    return [
        _passage(
            "manor-cellar",
            [
                "The cellar smells of wet earth and lamp oil. Shelves of preserves line "
                "the walls, their contents long since turned black.",
                "An oil lantern hangs on a hook by the stairs. Further in, something "
                "scratches slowly at stone.",
            ],
            [
                _choice("take-lantern", "Take the lantern and search the shelves.",
                        "manor-ground-floor", give("oil-lantern"), give("iron-key"), sanity(-5)),
                _choice("follow-scratching", "Follow the scratching into the dark.",
                        "manor-cellar-depths", sanity(-20), sound("scratching")),
            ],
            phase=StoryPhase.MID,
            background="manor-cellar",
        ),
        _passage(
            "manor-cellar-depths",
            [
                "The scratching stops the moment you stop walking. In the dark ahead, "
                "something is breathing in time with you.",
            ],
            [
                _choice("reach-into-dark", "Reach out into the darkness.",
                        "manor-ending-madness", sanity(-40), sound("scream"), critical=True),
                _choice("climb-back", "Back away, slowly, to the stairs.",
                        "manor-cellar", sanity(-5)),
            ],
            phase=StoryPhase.LATE,
        ),
        _passage(
            "manor-nursery",
            [
                "A music box plays on the windowsill though no one wound it. A rocking "
                "horse sways. In the crib, a bundle of your grandfather's letters, tied "
                "with a child's ribbon.",
            ],
            [
                _choice("take-letters", "Take the letters and leave the room.",
                        "manor-upper-main", give("bundled-letters"), flag("has_letters")),
                _choice("sing-along", "Hum along with the tune. It feels so familiar.",
                        "manor-ending-madness", sound("lullaby"), max_sanity=30),
            ],
            phase=StoryPhase.LATE,
        ),
        _passage(
            "manor-study",
            [
                "Your grandfather's study. Papers are pinned to every wall, connected by "
                "red string into a diagram of the house itself, with one room circled "
                "again and again: this one.",
                "A locked desk sits beneath the window. The fireplace is laid but unlit.",
            ],
            [
                _choice("unlock-desk", "Unlock the desk with the iron key.",
                        "manor-ending-truth", take("iron-key"), flag("read_confession"),
                        requires_items={"iron-key"}),
                _choice("burn-study", "Light the lantern and set the study ablaze.",
                        "manor-ending-fire", take("oil-lantern"), sound("fire"),
                        requires_items={"oil-lantern"}, critical=True),
                _choice("read-letters", "Read the bundled letters by the window.",
                        "manor-ending-truth", sanity(10),
                        requires_flags={"has_letters": True}),
                _choice("flee-study", "Run. Get out of this house.",
                        "manor-flee-early", sanity(-10), critical=True),
            ],
            phase=StoryPhase.LATE,
            background="manor-study",
            music="study-clock",
        ),
    ]


def _manor_endings() -> list[Passage]:
    return [
        _passage(
            "manor-flee-early",
            [
                "You drive until the manor is a smudge of darkness in the mirror, then "
                "until it is gone. The letter stays unopened in your pocket for years.",
                "Some nights you still hear the rain on those gates.",
            ],
            [],
            phase=StoryPhase.ENDING,
        ),
        _passage(
            "manor-ending-truth",
            [
                "In your grandfather's hand: a confession. The house was never haunted. "
                "It was fed, every generation, and he refused to feed it.",
                "You understand now why the door let you in.",
            ],
            [],
            phase=StoryPhase.ENDING,
        ),
        _passage(
            "manor-ending-fire",
            [
                "The papers catch first, then the curtains, then the walls, which scream "
                "as they burn. You watch from the lawn until dawn.",
            ],
            [],
            phase=StoryPhase.ENDING,
        ),
        _passage(
            "manor-ending-madness",
            [
                "Something takes your hand, gently, the way a grandfather would.",
                "The manor is quiet now. It has a new resident.",
            ],
            [],
            phase=StoryPhase.ENDING,
        ),
    ]


# =============================================================================
# The Forgotten Lighthouse
# =============================================================================

def create_forgotten_lighthouse() -> Story:
    """Morrow Point Lighthouse: the father's research journal."""
    passages = [
        _passage(
            "lighthouse-intro",
            [
                "The narrow coastal road ends abruptly at a cliff edge. Salt spray mists "
                "the air as waves crash violently against jagged rocks below.",
                "Before you stands the Morrow Point Lighthouse, a solitary stone tower "
                "that hasn't guided ships for decades. Its beacon remains dark, yet "
                "locals speak of lights sometimes seen from within.",
                "You've traveled here following coordinates found in your late father's "
                "research journal. Whatever he discovered about this place, it drove him "
                "to madness in his final days.",
            ],
            [
                _choice("enter-lighthouse", "Approach and enter the lighthouse.",
                        "lighthouse-entrance", sanity(-5)),
                _choice("circle-exterior", "Circle the exterior to inspect the structure first.",
                        "lighthouse-exterior"),
                _choice("check-journal", "Consult your father's journal for specific guidance.",
                        "lighthouse-journal", sanity(-5), min_sanity=85),
            ],
            title="THE FORGOTTEN LIGHTHOUSE",
            phase=StoryPhase.INTRO,
            background="lighthouse-cliff",
            music="waves",
        ),
        _passage(
            "lighthouse-exterior",
            [
                "At the base of the tower, one stone is cleaner than the rest. Beneath it, "
                "wrapped in oilcloth, a small brass key.",
            ],
            [
                _choice("take-brass-key", "Take the key and go inside.",
                        "lighthouse-entrance", give("brass-key")),
            ],
            phase=StoryPhase.INTRO,
        ),
        _passage(
            "lighthouse-journal",
            [
                "Page seventeen, underlined twice: *The light does not warn ships away. "
                "It calls something in. Read the keeper's log before you touch the lamp.*",
            ],
            [
                _choice("close-journal", "Close the journal and enter.",
                        "lighthouse-entrance", flag("read_journal"), var("journal_page", 17)),
            ],
            phase=StoryPhase.INTRO,
        ),
        _passage(
            "lighthouse-entrance",
            [
                "Inside, a spiral stair winds up into darkness. A trapdoor in the floor is "
                "secured with a brass padlock green with age.",
            ],
            [
                _choice("climb-stairs", "Climb toward the lamp room.",
                        "lighthouse-lamp-room", sanity(-10)),
                _choice("open-trapdoor", "Open the trapdoor with the brass key.",
                        "lighthouse-cellar", requires_items={"brass-key"}),
            ],
            phase=StoryPhase.EARLY,
        ),
        _passage(
            "lighthouse-cellar",
            [
                "Seawater laps at the bottom steps. On a dry shelf sits the keeper's log, "
                "its last entries written in a hand that grows larger and less steady.",
            ],
            [
                _choice("read-logbook", "Read the log, then climb to the lamp room.",
                        "lighthouse-lamp-room", sanity(-15), flag("knows_ritual"),
                        sound("waves-below")),
            ],
            phase=StoryPhase.MID,
        ),
        _passage(
            "lighthouse-lamp-room",
            [
                "The great lens fills the room, and in it the sea is reflected, though the "
                "windows show only night. Something moves in the reflection.",
            ],
            [
                _choice("light-beacon", "Light the lamp the way the keeper's log describes.",
                        "lighthouse-ending-beacon", requires_flags={"knows_ritual": True},
                        critical=True),
                _choice("stare-into-lens", "Look closer at the thing in the lens.",
                        "lighthouse-ending-drowned", sanity(-50), sound("scream"),
                        critical=True),
                _choice("descend", "Go back down the stairs.",
                        "lighthouse-entrance"),
            ],
            phase=StoryPhase.LATE,
            variants=(
                TextVariant(
                    text="Your father's words burn behind your eyes. In the lens the sea is "
                         "rising, and the thing beneath it is rising with it, answering a "
                         "light that has not been lit. Not yet.",
                    has_flags={"read_journal": True},
                ),
            ),
        ),
        _passage(
            "lighthouse-ending-beacon",
            [
                "The lamp blazes, turned outward as the keeper meant it: a warning, not a "
                "call. Far below, something vast sinks back into the deep.",
            ],
            [],
            phase=StoryPhase.ENDING,
        ),
        _passage(
            "lighthouse-ending-drowned",
            [
                "The glass is cold, then wet, then gone. You are very deep now, and it is "
                "very quiet, and your father is waiting.",
            ],
            [],
            phase=StoryPhase.ENDING,
        ),
    ]
    return Story(
        story_id=LIGHTHOUSE_ID,
        title="THE FORGOTTEN LIGHTHOUSE",
        author="Eden's Hollow",
        description="Your late father's research led him here, and to madness.",
        start_passage_id="lighthouse-intro",
        passages={p.passage_id: p for p in passages},
        ending_passage_ids=frozenset({"lighthouse-ending-beacon", "lighthouse-ending-drowned"}),
    )
