from __future__ import annotations

from typing import List

from pydantic import BaseModel


class StoryTemplate(BaseModel):
    id: str
    name: str
    tags: List[str]
    blurb: str
    keywords: List[str]


# Order matters: the generator indexes into this list.
TEMPLATE_LIBRARY: List[StoryTemplate] = [
    StoryTemplate(
        id="fable_fox_grapes",
        name="The Fox and the High Vine (Fable)",
        tags=["fable", "fox", "desire", "excuses"],
        blurb="Something sweet hangs just out of reach, and failure is renamed as taste.",
        keywords=["fox", "grapes", "vine", "reach", "excuse", "hunger", "pride", "sour"],
    ),
    StoryTemplate(
        id="fable_tortoise_hare",
        name="The Slow Runner's Race (Fable)",
        tags=["fable", "race", "patience", "arrogance"],
        blurb="A quick runner naps at the halfway mark while a steady one keeps walking.",
        keywords=["tortoise", "hare", "race", "nap", "finish", "steady", "boast", "path"],
    ),
    StoryTemplate(
        id="fable_lion_mouse",
        name="The Lion in the Net (Fable)",
        tags=["fable", "forest", "kindness", "help"],
        blurb="A spared mouse returns the favour with small teeth and a big rope.",
        keywords=["lion", "mouse", "net", "mercy", "teeth", "rope", "forest", "promise"],
    ),
    StoryTemplate(
        id="folktale_monkey_crocodile",
        name="The Monkey Who Left His Heart Ashore (Folktale)",
        tags=["folktale", "river", "friendship", "trick"],
        blurb="Halfway across a river, a clever answer is the only way back to the tree.",
        keywords=["monkey", "crocodile", "river", "island", "heart", "friend", "mango", "trick"],
    ),
    StoryTemplate(
        id="folktale_blue_jackal",
        name="The Jackal Dyed Blue (Folktale)",
        tags=["folktale", "identity", "trick", "colors"],
        blurb="A borrowed colour buys a crown until one old habit gives it away.",
        keywords=["jackal", "dye", "blue", "pack", "howl", "truth", "mask", "rain"],
    ),
    StoryTemplate(
        id="jataka_banyan_deer",
        name="The Deer Who Kept His Word (Jataka)",
        tags=["jataka", "forest", "compassion", "promise"],
        blurb="A herd leader offers himself in place of another and changes a hunter's mind.",
        keywords=["deer", "king", "forest", "promise", "hunt", "mercy", "herd", "fear"],
    ),
    StoryTemplate(
        id="myth_icarus",
        name="Wings of Wax (Myth)",
        tags=["myth", "sun", "sea", "warning", "pride"],
        blurb="A father's warning about height is ignored one wingbeat too many.",
        keywords=["wings", "wax", "sun", "sea", "warning", "height", "feather", "fall"],
    ),
    StoryTemplate(
        id="myth_midas",
        name="The Golden Touch (Myth)",
        tags=["myth", "gold", "wish", "regret"],
        blurb="A perfect wish goes wrong at the first meal.",
        keywords=["gold", "wish", "touch", "bread", "water", "regret", "gift", "curse"],
    ),
    StoryTemplate(
        id="legend_greenwood_archer",
        name="The Archer of the Greenwood (Legend)",
        tags=["legend", "forest", "justice"],
        blurb="One arrow at a fair proves both the aim and the intent behind it.",
        keywords=["archer", "forest", "arrow", "target", "sheriff", "outlaw", "coin", "justice"],
    ),
    StoryTemplate(
        id="fairy_hidden_name",
        name="Straw into Gold (Fairy Tale)",
        tags=["fairy", "deal", "name", "riddle"],
        blurb="A bargain made at night can only be undone by guessing a name.",
        keywords=["straw", "gold", "deal", "name", "secret", "queen", "spool", "promise"],
    ),
    StoryTemplate(
        id="history_dune_flight",
        name="First Flight at the Dunes (History)",
        tags=["history", "aviation", "wind", "persistence"],
        blurb="A fragile machine is tested again and again until twelve seconds change everything.",
        keywords=["dunes", "wind", "engine", "glide", "failure", "retry", "control", "lift"],
    ),
    StoryTemplate(
        id="history_city_fire",
        name="The City Fire and the Turning Wind (History)",
        tags=["history", "city", "fire", "rebuild"],
        blurb="A bakery spark becomes a week of flames; quick choices decide what survives.",
        keywords=["spark", "wind", "river", "lanes", "bucket", "break", "rebuild", "night"],
    ),
    StoryTemplate(
        id="exploration_icebound_crew",
        name="The Icebound Crew (Exploration)",
        tags=["history", "exploration", "antarctica", "leadership", "survival"],
        blurb="The ship is lost to the ice, so the mission becomes bringing everyone home.",
        keywords=["ice", "camp", "ration", "map", "rescue", "signal", "oar", "promise"],
    ),
    StoryTemplate(
        id="science_mould_dish",
        name="The Forgotten Dish (Science)",
        tags=["history", "science", "discovery", "observation"],
        blurb="A messy bench hides a breakthrough for whoever notices the clear ring.",
        keywords=["lab", "dish", "mold", "note", "pattern", "care", "test", "result"],
    ),
    StoryTemplate(
        id="duty_lighthouse_storm",
        name="The Lamp in the Storm (True-to-life)",
        tags=["real-life", "sea", "storm", "duty", "signal"],
        blurb="A keeper stays by the lamp all night while the waves climb the rocks.",
        keywords=["storm", "lamp", "oil", "rope", "wave", "signal", "cliff", "duty"],
    ),
    StoryTemplate(
        id="sport_final_whistle",
        name="Underdogs at the Final Whistle (Sport)",
        tags=["real-life", "sport", "team", "focus", "comeback"],
        blurb="Two goals down with minutes left, calm passing beats panic.",
        keywords=["whistle", "coach", "timeout", "pass", "defense", "stamina", "crowd", "comeback"],
    ),
    StoryTemplate(
        id="rescue_ridge_signal",
        name="The Ridge Signal (Rescue)",
        tags=["real-life", "rescue", "mountain", "signal", "teamwork"],
        blurb="In fog and thin air, a simple signal plan keeps a search team together.",
        keywords=["ridge", "fog", "radio", "rope", "trail", "marker", "plan", "calm"],
    ),
    StoryTemplate(
        id="trade_caravan_road",
        name="Caravan on the Long Road (History)",
        tags=["history", "trade", "desert", "trust"],
        blurb="Across the sand, trust is the only currency every merchant accepts.",
        keywords=["caravan", "water", "map", "merchant", "guard", "oasis", "deal", "trust"],
    ),
    StoryTemplate(
        id="engineering_bridge_deadline",
        name="The Bridge Builder's Deadline (True-to-life)",
        tags=["real-life", "engineering", "pressure", "safety"],
        blurb="Told to open the bridge early, an inspector insists on one more load test.",
        keywords=["blueprint", "bolt", "test", "deadline", "weight", "safety", "inspect", "report"],
    ),
    StoryTemplate(
        id="radio_first_broadcast",
        name="The First Broadcast Night (History)",
        tags=["history", "radio", "signal", "courage", "timing"],
        blurb="A crackling signal reaches ships far beyond the map on its first night.",
        keywords=["signal", "static", "mic", "timing", "switch", "tower", "message", "silence"],
    ),
]


def list_library() -> list[dict[str, object]]:
    return [
        {"id": template.id, "name": template.name, "tags": list(template.tags), "blurb": template.blurb}
        for template in TEMPLATE_LIBRARY
    ]
