"""Turn raw PokeAPI identifiers ("mr-mime", "deoxys-normal") into display names."""

import re

# Exact overrides: raw name -> display name
SPECIAL_NAMES = {
    'nidoran-f': 'Nidoran♀',
    'nidoran-m': 'Nidoran♂',
    'mr-mime': 'Mr. Mime',
    'farfetchd': "Farfetch'd",
    'ho-oh': 'Ho-Oh',
    'mime-jr': 'Mime Jr.',
    'porygon-z': 'Porygon-Z',
    'flabebe': 'Flabébé',
    'type-null': 'Type: Null',
    'jangmo-o': 'Jangmo-o',
    'hakamo-o': 'Hakamo-o',
    'kommo-o': 'Kommo-o',
    'tapu-koko': 'Tapu Koko',
    'tapu-lele': 'Tapu Lele',
    'tapu-bulu': 'Tapu Bulu',
    'tapu-fini': 'Tapu Fini',
    'mr-rime': 'Mr. Rime',
    'sirfetchd': "Sirfetch'd",
    'wo-chien': 'Wo-Chien',
    'chien-pao': 'Chien-Pao',
    'ting-lu': 'Ting-Lu',
    'chi-yu': 'Chi-Yu',
    'great-tusk': 'Great Tusk',
    'scream-tail': 'Scream Tail',
    'brute-bonnet': 'Brute Bonnet',
    'flutter-mane': 'Flutter Mane',
    'slither-wing': 'Slither Wing',
    'sandy-shocks': 'Sandy Shocks',
    'iron-treads': 'Iron Treads',
    'iron-bundle': 'Iron Bundle',
    'iron-hands': 'Iron Hands',
    'iron-jugulis': 'Iron Jugulis',
    'iron-moth': 'Iron Moth',
    'iron-thorns': 'Iron Thorns',
    'roaring-moon': 'Roaring Moon',
    'iron-valiant': 'Iron Valiant',
    'walking-wake': 'Walking Wake',
    'iron-leaves': 'Iron Leaves',
    'gouging-fire': 'Gouging Fire',
    'raging-bolt': 'Raging Bolt',
    'iron-boulder': 'Iron Boulder',
    'iron-crown': 'Iron Crown',
}

# Names whose hyphen is part of the species name
KEEP_HYPHEN_PATTERNS = [
    re.compile(r'^ho-oh$', re.I),
    re.compile(r'^porygon-z$', re.I),
    re.compile(r'mo-o$', re.I),
    re.compile(r'^wo-chien$', re.I),
    re.compile(r'^chien-pao$', re.I),
    re.compile(r'^ting-lu$', re.I),
    re.compile(r'^chi-yu$', re.I),
]

# Trailing form names PokeAPI appends to the default variety
KNOWN_FORM_SUFFIXES = {
    'normal', 'attack', 'defense', 'speed', 'plant', 'sandy', 'trash',
    'altered', 'origin', 'land', 'sky', 'standard', 'zen', 'incarnate',
    'therian', 'black', 'white', 'ordinary', 'resolute', 'aria', 'pirouette',
    'average', 'small', 'large', 'super', '50', '10', 'confined', 'unbound',
    'baile', 'pompom', 'pau', 'sensu', 'midday', 'midnight', 'dusk',
    'solo', 'school', 'red', 'orange', 'yellow', 'green', 'blue', 'indigo',
    'violet', 'shield', 'blade', 'male', 'female', 'full', 'meteor',
    'amped', 'lowkey', 'ice', 'noice', 'hangry', 'crowned', 'eternamax',
    'rapid', 'single', 'family', 'three', 'four', 'hero', 'stellar',
}


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def strip_form_suffix(name: str) -> str:
    parts = name.lower().split('-')
    if len(parts) > 1 and parts[-1] in KNOWN_FORM_SUFFIXES:
        return '-'.join(parts[:-1])
    return name


def clean_pokemon_name(raw_name: str) -> str:
    special = SPECIAL_NAMES.get(raw_name.lower())
    if special:
        return special

    base_name = strip_form_suffix(raw_name)
    special = SPECIAL_NAMES.get(base_name.lower())
    if special:
        return special

    parts = [_capitalize(p) for p in base_name.split('-')]
    if any(p.search(base_name) for p in KEEP_HYPHEN_PATTERNS):
        return '-'.join(parts)
    return ' '.join(parts)
