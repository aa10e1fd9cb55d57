"""
Template based short stories for reading practice
"""
from __future__ import annotations

import math
import random
import uuid
from typing import List, Optional, Sequence, Tuple

import structlog

from terve.errors import InvalidInputError
from terve.schemas import (
    ComprehensionQuestion, GeneratedStory, LengthBand, QuestionType, StoryRequest,
)
from terve.services.levels import CefrLevel, for_level, level_table, resolve_level
from terve.services.logging import log_performance

logger = structlog.get_logger()

MAX_KEYWORDS = 3

LENGTH_BANDS = {
    LengthBand.SHORT: (100, 200),
    LengthBand.MEDIUM: (200, 400),
    LengthBand.LONG: (400, 600),
}

READING_SPEEDS = level_table({
    CefrLevel.A1: 50,
    CefrLevel.A2: 75,
    CefrLevel.B1: 100,
    CefrLevel.B2: 125,
    CefrLevel.C1: 150,
    CefrLevel.C2: 175,
})

STORY_TEMPLATES = level_table({
    CefrLevel.A1: (
        ("Päivä kaupungissa",
         "Liisa menee kauppaan. Hän ostaa leipää ja maitoa. Myyjä on ystävällinen. Liisa maksaa ja "
         "sanoo \"kiitos\". Sitten hän menee kotiin ja tekee ruokaa. Perhe syö yhdessä. Ilta on mukava."),
        ("Koulu alkaa",
         "Pekka on seitsemän vuotta vanha. Hän menee kouluun ensimmäistä kertaa. Äiti vie hänet "
         "koululle. Opettaja on mukava nainen. Pekka tapaa uusia ystäviä. Hän oppii lukemaan ja "
         "kirjoittamaan."),
    ),
    CefrLevel.A2: (
        ("Matka Lappiin",
         "Viime kesänä matkustin Lappiin. Näin siellä paljon poroja ja kaunista luontoa. Yövyin "
         "pienessä mökissä järven rannalla. Kalastin ja keräsin marjoja. Paikalliset ihmiset olivat "
         "erittäin ystävällisiä ja kertoivat minulle saamelaisten perinteistä."),
    ),
    CefrLevel.B1: (
        ("Elämäntapamuutos",
         "Viime vuonna päätin muuttaa elämäntapojani kokonaan. Lopetin tupakoinnin ja aloin harrastaa "
         "säännöllisesti liikuntaa. Aluksi oli vaikeaa, mutta ystävieni tuki auttoi paljon. Nyt tunnen "
         "oloni paljon paremmaksi ja olen ylpeä itsestäni."),
    ),
    CefrLevel.B2: (
        ("Teknologian vaikutus yhteiskuntaan",
         "Digitalisoituminen on muuttanut yhteiskuntaamme perusteellisesti. Vaikka teknologia on "
         "tuonut monia etuja, kuten tehokkuutta ja kätevyyttä, se on myös luonut uusia haasteita. "
         "Meidän on löydettävä tasapaino teknologian käytön ja inhimillisten arvojen välillä."),
    ),
    CefrLevel.C1: (
        ("Kulttuurinen identiteetti globaalissa maailmassa",
         "Globalisaation myötä kulttuurinen identiteetti on joutunut uudenlaisen tarkastelun kohteeksi. "
         "Perinteiset rajat hämärtyvät, ja ihmiset joutuvat pohtimaan, mikä heitä todella määrittää. "
         "Tämä kehitys luo sekä mahdollisuuksia että uhkia kulttuuriselle monimuotoisuudelle."),
    ),
    CefrLevel.C2: (
        ("Taiteen rooli yhteiskunnallisessa muutoksessa",
         "Taide on aina heijastanut aikansa henkeä ja toiminut yhteiskunnallisen muutoksen "
         "katalysaattorina. Taiteilijat kyseenalaistavat vallitsevia normeja ja tarjoavat "
         "vaihtoehtoisia näkökulmia todellisuuteen. Postmodernissa ajassamme taiteen merkitys "
         "korostuu entisestään fragmentoituneen maailmankuvan hahmottamisessa."),
    ),
})

FILLER_SENTENCES = level_table({
    CefrLevel.A1: (
        "Sää oli kaunis.",
        "Hän oli iloinen.",
        "Päivä oli pitkä.",
        "Kaikki meni hyvin.",
    ),
    CefrLevel.A2: (
        "Tilanne tuntui mielenkiintoiselta.",
        "Hän muisti lapsuutensa.",
        "Ympärillä oli paljon ihmisiä.",
        "Tunnelma oli lämmin ja kodikas.",
    ),
    CefrLevel.B1: (
        "Tämä kokemus muutti hänen näkemystään elämästä.",
        "Hän pohti tilanteen merkitystä syvällisesti.",
        "Ympäristö vaikutti hänen mielialaansa merkittävästi.",
        "Hän ymmärsi, että elämässä on monia eri puolia.",
    ),
    CefrLevel.B2: (
        "Keskustelu herätti monenlaisia ajatuksia.",
        "Muutos ei tapahtunut hetkessä, vaan vähitellen.",
        "Kaikki eivät olleet samaa mieltä ratkaisusta.",
        "Taustalla vaikutti useita eri tekijöitä.",
    ),
    CefrLevel.C1: (
        "Ilmiön taustalla on pitkä ja monisyinen historia.",
        "Näkökulmien moninaisuus rikastuttaa keskustelua.",
        "Vastausta ei voi muotoilla yksiselitteisesti.",
        "Kysymys koskettaa jokaista yhteiskunnan jäsentä.",
    ),
    CefrLevel.C2: (
        "Aikalaiset tuskin tunnistivat muutoksen koko laajuutta.",
        "Tulkinnat vaihtelevat katsojan lähtökohtien mukaan.",
        "Perinne ja uudistus kietoutuvat toisiinsa erottamattomasti.",
        "Ristiriitaisuus on ilmiön olennainen piirre.",
    ),
})

KEYWORD_SENTENCE = "{keyword} oli tärkeä osa tarinaa."


def word_count(text: str) -> int:
    return len(text.split())


def reading_minutes(count: int, level: str) -> int:
    return math.ceil(count / for_level(READING_SPEEDS, level))


def parse_keywords(raw: Optional[str]) -> List[str]:
    """Split a comma separated keyword string, rejecting more than three keywords"""
    keywords = [k.strip() for k in (raw or "").split(",") if k.strip()]
    if len(keywords) > MAX_KEYWORDS:
        raise InvalidInputError(f"Please provide at most {MAX_KEYWORDS} keywords")
    return keywords


def incorporate_keywords(content: str, keywords: Sequence[str]) -> str:
    for keyword in keywords:
        if keyword.lower() not in content.lower():
            content = f"{content} {KEYWORD_SENTENCE.format(keyword=keyword)}"
    return content


def keyword_title(title: str, keywords: Sequence[str]) -> str:
    if keywords:
        return f"{title} - {keywords[0]}"
    return title


def expand_story(content: str, minimum: int, fillers: Sequence[str], rng: random.Random) -> str:
    """Append random filler sentences until the story reaches the minimum length"""
    count = word_count(content)
    while count < minimum and fillers:
        sentence = rng.choice(fillers)
        content = f"{content} {sentence}"
        count += word_count(sentence)
    return content


def truncate_story(content: str, maximum: int) -> str:
    words = content.split()[:maximum]
    return " ".join(words).rstrip(".,;:!?") + "."


def fit_length(content: str, band: Tuple[int, int], fillers: Sequence[str], rng: random.Random) -> str:
    minimum, maximum = band
    if word_count(content) < minimum:
        content = expand_story(content, minimum, fillers, rng)
    if word_count(content) > maximum:
        content = truncate_story(content, maximum)
    return content


@log_performance("generate_story")
def generate_story(request: StoryRequest, rng: Optional[random.Random] = None) -> GeneratedStory:
    rng = rng or random.Random()
    level = resolve_level(request.target_level)
    band = LENGTH_BANDS[request.length_band]

    title, content = rng.choice(for_level(STORY_TEMPLATES, level))
    if request.keywords:
        content = incorporate_keywords(content, request.keywords)
        title = keyword_title(title, request.keywords)
    content = fit_length(content, band, for_level(FILLER_SENTENCES, level), rng)

    count = word_count(content)
    logger.info("story_generated", level=level.value, length=request.length_band.value,
                word_count=count, keywords=len(request.keywords))
    return GeneratedStory(
        id=uuid.uuid4().hex,
        title=title,
        content=content,
        target_level=level.value,
        word_count=count,
        estimated_reading_minutes=reading_minutes(count, level),
        keywords=list(request.keywords),
    )


def generate_comprehension_questions(story: GeneratedStory) -> List[ComprehensionQuestion]:
    """Generic questions for a story; they do not look at the story text"""
    questions = [
        ComprehensionQuestion(
            id=1,
            type=QuestionType.MULTIPLE_CHOICE,
            prompt="Mikä on tarinan pääajatus?",
            options=["Henkilökohtainen kasvu", "Matkailu", "Perhe", "Työ"],
            correct_answer=0,
            explanation="Tarina keskittyy päähenkilön henkilökohtaiseen kasvuun ja oppimiseen.",
        )
    ]
    if resolve_level(story.target_level) in (CefrLevel.A1, CefrLevel.A2):
        questions.append(ComprehensionQuestion(
            id=2,
            type=QuestionType.TRUE_FALSE,
            prompt="Päähenkilö oli tyytyväinen tilanteeseen.",
            correct_answer=True,
            explanation="Tekstistä käy ilmi, että päähenkilö oli tyytyväinen.",
        ))
    else:
        questions.append(ComprehensionQuestion(
            id=2,
            type=QuestionType.OPEN_ENDED,
            prompt="Analysoi päähenkilön motivaatioita ja päätöksentekoa.",
            sample_answer="Päähenkilön toiminta perustui syvälliseen pohdintaan ja henkilökohtaisiin arvoihin.",
        ))
    return questions
