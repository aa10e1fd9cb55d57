"""
Starter catalog of words, nouns and verbs loaded into an empty database
"""
from sqlmodel import Session, select

from terve.models import Noun, Verb, Word

# (finnish, english, part of speech, level, commonality rank, difficulty)
WORDS = [
    ("olla", "to be", "verb", "A1", 1, 1),
    ("ja", "and", "conjunction", "A1", 2, 1),
    ("minä", "I", "pronoun", "A1", 3, 1),
    ("sinä", "you", "pronoun", "A1", 4, 1),
    ("hän", "he/she", "pronoun", "A1", 5, 1),
    ("talo", "house", "noun", "A1", 6, 1),
    ("kissa", "cat", "noun", "A1", 7, 1),
    ("koira", "dog", "noun", "A1", 8, 1),
    ("vesi", "water", "noun", "A1", 9, 2),
    ("leipä", "bread", "noun", "A1", 10, 1),
    ("maito", "milk", "noun", "A1", 11, 1),
    ("kahvi", "coffee", "noun", "A1", 12, 1),
    ("kirja", "book", "noun", "A1", 13, 1),
    ("koulu", "school", "noun", "A1", 14, 1),
    ("kauppa", "shop", "noun", "A1", 15, 2),
    ("äiti", "mother", "noun", "A1", 16, 1),
    ("isä", "father", "noun", "A1", 17, 1),
    ("ystävä", "friend", "noun", "A1", 18, 2),
    ("päivä", "day", "noun", "A1", 19, 1),
    ("ilta", "evening", "noun", "A1", 20, 2),
    ("hyvä", "good", "adjective", "A1", 21, 1),
    ("iso", "big", "adjective", "A1", 22, 1),
    ("pieni", "small", "adjective", "A1", 23, 2),
    ("kaunis", "beautiful", "adjective", "A1", 24, 2),
    ("puhua", "to speak", "verb", "A1", 25, 1),
    ("syödä", "to eat", "verb", "A1", 26, 1),
    ("juoda", "to drink", "verb", "A1", 27, 1),
    ("tulla", "to come", "verb", "A1", 28, 2),
    ("mennä", "to go", "verb", "A1", 29, 2),
    ("kiitos", "thank you", "interjection", "A1", 30, 1),
    ("matka", "trip", "noun", "A2", 31, 2),
    ("järvi", "lake", "noun", "A2", 32, 2),
    ("kaupunki", "city", "noun", "A2", 33, 3),
    ("työ", "work", "noun", "A2", 34, 2),
    ("haluta", "to want", "verb", "A2", 35, 2),
    ("museo", "museum", "noun", "A2", 36, 2),
    ("harrastus", "hobby", "noun", "A2", 37, 3),
    ("eilen", "yesterday", "adverb", "A2", 38, 2),
    ("ihminen", "person", "noun", "B1", 39, 3),
    ("tarvita", "to need", "verb", "B1", 40, 3),
    ("mielipide", "opinion", "noun", "B1", 41, 3),
    ("ympäristö", "environment", "noun", "B1", 42, 4),
    ("yhteiskunta", "society", "noun", "B2", 43, 4),
    ("vanheta", "to grow old", "verb", "B2", 44, 4),
    ("kehitys", "development", "noun", "B2", 45, 4),
    ("monimuotoisuus", "diversity", "noun", "C1", 46, 5),
    ("kyseenalaistaa", "to question", "verb", "C1", 47, 5),
    ("katalysaattori", "catalyst", "noun", "C2", 48, 5),
]

# nominative, english, level, noun type, then the singular and plural forms
# in the order genitive, partitive, illative, inessive, elative, allative,
# adessive, ablative (plural starts with the nominative plural)
NOUNS = [
    ("talo", "house", "A1", "o-stem",
     ["talon", "taloa", "taloon", "talossa", "talosta", "talolle", "talolla", "talolta"],
     ["talot", "talojen", "taloja", "taloihin", "taloissa", "taloista", "taloille", "taloilla", "taloilta"]),
    ("kissa", "cat", "A1", "a-stem",
     ["kissan", "kissaa", "kissaan", "kissassa", "kissasta", "kissalle", "kissalla", "kissalta"],
     ["kissat", "kissojen", "kissoja", "kissoihin", "kissoissa", "kissoista", "kissoille", "kissoilla", "kissoilta"]),
    ("kirja", "book", "A1", "a-stem",
     ["kirjan", "kirjaa", "kirjaan", "kirjassa", "kirjasta", "kirjalle", "kirjalla", "kirjalta"],
     ["kirjat", "kirjojen", "kirjoja", "kirjoihin", "kirjoissa", "kirjoista", "kirjoille", "kirjoilla", "kirjoilta"]),
    ("kauppa", "shop", "A1", "consonant gradation pp-p",
     ["kaupan", "kauppaa", "kauppaan", "kaupassa", "kaupasta", "kaupalle", "kaupalla", "kaupalta"],
     ["kaupat", "kauppojen", "kauppoja", "kauppoihin", "kaupoissa", "kaupoista", "kaupoille", "kaupoilla", "kaupoilta"]),
    ("järvi", "lake", "A2", "i/e-stem",
     ["järven", "järveä", "järveen", "järvessä", "järvestä", "järvelle", "järvellä", "järveltä"],
     ["järvet", "järvien", "järviä", "järviin", "järvissä", "järvistä", "järville", "järvillä", "järviltä"]),
    ("kaupunki", "city", "A2", "consonant gradation nk-ng",
     ["kaupungin", "kaupunkia", "kaupunkiin", "kaupungissa", "kaupungista", "kaupungille", "kaupungilla", "kaupungilta"],
     ["kaupungit", "kaupunkien", "kaupunkeja", "kaupunkeihin", "kaupungeissa", "kaupungeista", "kaupungeille", "kaupungeilla", "kaupungeilta"]),
    ("ihminen", "person", "B1", "nen-stem",
     ["ihmisen", "ihmistä", "ihmiseen", "ihmisessä", "ihmisestä", "ihmiselle", "ihmisellä", "ihmiseltä"],
     ["ihmiset", "ihmisten", "ihmisiä", "ihmisiin", "ihmisissä", "ihmisistä", "ihmisille", "ihmisillä", "ihmisiltä"]),
]

# infinitive, english, verb type, level, then present, past and conditional
# forms for minä, sinä, hän, me, te, he
VERBS = [
    ("puhua", "to speak", 1, "A1",
     ["puhun", "puhut", "puhuu", "puhumme", "puhutte", "puhuvat"],
     ["puhuin", "puhuit", "puhui", "puhuimme", "puhuitte", "puhuivat"],
     ["puhuisin", "puhuisit", "puhuisi", "puhuisimme", "puhuisitte", "puhuisivat"]),
    ("asua", "to live", 1, "A1",
     ["asun", "asut", "asuu", "asumme", "asutte", "asuvat"],
     ["asuin", "asuit", "asui", "asuimme", "asuitte", "asuivat"],
     ["asuisin", "asuisit", "asuisi", "asuisimme", "asuisitte", "asuisivat"]),
    ("syödä", "to eat", 2, "A1",
     ["syön", "syöt", "syö", "syömme", "syötte", "syövät"],
     ["söin", "söit", "söi", "söimme", "söitte", "söivät"],
     ["söisin", "söisit", "söisi", "söisimme", "söisitte", "söisivät"]),
    ("juoda", "to drink", 2, "A1",
     ["juon", "juot", "juo", "juomme", "juotte", "juovat"],
     ["join", "joit", "joi", "joimme", "joitte", "joivat"],
     ["joisin", "joisit", "joisi", "joisimme", "joisitte", "joisivat"]),
    ("tulla", "to come", 3, "A1",
     ["tulen", "tulet", "tulee", "tulemme", "tulette", "tulevat"],
     ["tulin", "tulit", "tuli", "tulimme", "tulitte", "tulivat"],
     ["tulisin", "tulisit", "tulisi", "tulisimme", "tulisitte", "tulisivat"]),
    ("haluta", "to want", 4, "A2",
     ["haluan", "haluat", "haluaa", "haluamme", "haluatte", "haluavat"],
     ["halusin", "halusit", "halusi", "halusimme", "halusitte", "halusivat"],
     ["haluaisin", "haluaisit", "haluaisi", "haluaisimme", "haluaisitte", "haluaisivat"]),
    ("tarvita", "to need", 5, "B1",
     ["tarvitsen", "tarvitset", "tarvitsee", "tarvitsemme", "tarvitsette", "tarvitsevat"],
     ["tarvitsin", "tarvitsit", "tarvitsi", "tarvitsimme", "tarvitsitte", "tarvitsivat"],
     ["tarvitsisin", "tarvitsisit", "tarvitsisi", "tarvitsisimme", "tarvitsisitte", "tarvitsisivat"]),
    ("vanheta", "to grow old", 6, "B2",
     ["vanhenen", "vanhenet", "vanhenee", "vanhenemme", "vanhenette", "vanhenevat"],
     ["vanhenin", "vanhenit", "vanheni", "vanhenimme", "vanhenitte", "vanhenivat"],
     ["vanhenisin", "vanhenisit", "vanhenisi", "vanhenisimme", "vanhenisitte", "vanhenisivat"]),
]

CASE_COLUMNS = ["genitive", "partitive", "illative", "inessive", "elative", "allative", "adessive", "ablative"]
PERSON_COLUMNS = ["mina", "sina", "han", "me", "te", "he"]


def _noun_from_row(row) -> Noun:
    nominative, english, level, noun_type, singular, plural = row
    forms = {f"{case}_sg": form for case, form in zip(CASE_COLUMNS, singular)}
    forms["nominative_pl"] = plural[0]
    forms.update({f"{case}_pl": form for case, form in zip(CASE_COLUMNS, plural[1:])})
    return Noun(nominative=nominative, english=english, cefr_level=level, noun_type=noun_type, **forms)


def _verb_from_row(row) -> Verb:
    infinitive, english, verb_type, level, present, past, conditional = row
    forms = {}
    for tense, tense_forms in (("present", present), ("past", past), ("conditional", conditional)):
        forms.update({f"{tense}_{person}": form for person, form in zip(PERSON_COLUMNS, tense_forms)})
    return Verb(infinitive=infinitive, english=english, verb_type=verb_type, cefr_level=level, **forms)


def seed_catalog(session: Session) -> dict:
    """Insert the starter catalog into empty catalog tables and report what was added"""
    added = {}
    if session.exec(select(Word)).first() is None:
        for finnish, english, pos, level, rank, difficulty in WORDS:
            session.add(Word(finnish=finnish, english=english, part_of_speech=pos,
                             cefr_level=level, commonality_rank=rank, difficulty=difficulty))
        added["words"] = len(WORDS)
    if session.exec(select(Noun)).first() is None:
        for row in NOUNS:
            session.add(_noun_from_row(row))
        added["nouns"] = len(NOUNS)
    if session.exec(select(Verb)).first() is None:
        for row in VERBS:
            session.add(_verb_from_row(row))
        added["verbs"] = len(VERBS)
    session.commit()
    return added
