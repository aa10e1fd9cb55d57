"""
Mock CEFR exams: generation from topic templates, grading and result history
"""
from __future__ import annotations

import random
import re
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy import func
from sqlmodel import Session, select

from terve.errors import InvalidSessionError, NotFoundError
from terve.models import ExamAttempt, ExamResult, PASS_PERCENTAGE, as_utc, round_half_up, utc_now
from terve.schemas import (
    ExamInstance, ExamQuestion, ExamSection, ExamSessionState, GradedResult,
    QuestionFeedback, QuestionType, SectionScore,
)
from terve.services.levels import CefrLevel, for_level, level_table, parse_level, resolve_level
from terve.services.logging import log_performance

logger = structlog.get_logger()

SECTION_COUNTS = (
    (ExamSection.GRAMMAR, 15),
    (ExamSection.VOCABULARY, 12),
    (ExamSection.READING, 12),
    (ExamSection.LISTENING, 10),
)

# Share of the exam in percent; scoring follows the item counts above
SECTION_WEIGHTS = {
    ExamSection.GRAMMAR: 30,
    ExamSection.VOCABULARY: 25,
    ExamSection.READING: 25,
    ExamSection.LISTENING: 20,
}

TIME_LIMITS = level_table({
    CefrLevel.A1: 45,
    CefrLevel.A2: 60,
    CefrLevel.B1: 75,
    CefrLevel.B2: 90,
    CefrLevel.C1: 105,
    CefrLevel.C2: 120,
})
DEFAULT_TIME_LIMIT = 60

GRAMMAR_POINTS = 2
VOCABULARY_POINTS = 1
READING_CHOICE_POINTS = 3
READING_TRUE_FALSE_POINTS = 2
LISTENING_POINTS = 2

GRAMMAR_TOPICS = level_table({
    CefrLevel.A1: ("present_tense", "basic_cases", "pronouns", "numbers"),
    CefrLevel.A2: ("past_tense", "partitive", "possessive", "object_cases"),
    CefrLevel.B1: ("conditional", "passive", "participles", "local_cases"),
    CefrLevel.B2: ("potential_mood", "temporal_cases", "advanced_participles"),
    CefrLevel.C1: ("imperative_third_person", "complex_sentences", "stylistic_variation"),
    CefrLevel.C2: ("archaic_forms", "dialectal_features", "literary_language"),
})

# topic -> (prompt, options, index of the correct option, explanation)
GRAMMAR_TEMPLATES = {
    "present_tense": (
        'Valitse oikea muoto: "Hän _____ koulussa."',
        ["on", "ovat", "olet", "olen"], 0,
        'Kolmas persoona yksikkö: "hän on"'),
    "basic_cases": (
        'Valitse oikea muoto: "Minä asun _____." (Helsinki)',
        ["Helsinki", "Helsingissä", "Helsinkiin", "Helsingistä"], 1,
        'Inessiivi kertoo, missä jokin on: "Helsingissä".'),
    "pronouns": (
        'Valitse oikea pronomini: "_____ olemme opiskelijoita."',
        ["Minä", "Me", "He", "Te"], 1,
        'Verbi "olemme" vaatii monikon ensimmäisen persoonan: "me".'),
    "numbers": (
        "Miten luku 7 kirjoitetaan suomeksi?",
        ["kuusi", "seitsemän", "kahdeksan", "viisi"], 1,
        'Luku 7 on "seitsemän".'),
    "past_tense": (
        'Valitse oikea muoto: "Eilen me _____ elokuvissa."',
        ["kävin", "kävimme", "kävit", "kävivät"], 1,
        'Ensimmäinen persoona monikko imperfektissä: "me kävimme"'),
    "partitive": (
        'Valitse oikea muoto: "Juon aamulla _____." (kahvi)',
        ["kahvi", "kahvin", "kahvia", "kahviin"], 2,
        'Ainesana ilman tarkkaa määrää on partitiivissa: "kahvia".'),
    "possessive": (
        'Valitse oikea muoto: "Tämä on minun _____." (kirja)',
        ["kirja", "kirjani", "kirjasi", "kirjansa"], 1,
        'Minun-pronominin kanssa käytetään possessiivisuffiksia -ni: "kirjani".'),
    "object_cases": (
        'Valitse oikea objekti: "Luin eilen koko _____." (kirja)',
        ["kirja", "kirjan", "kirjaa", "kirjassa"], 1,
        'Kokonaisobjekti on genetiivin muotoinen: "luin kirjan".'),
    "conditional": (
        'Täydennä lause: "Jos minulla _____ aikaa, matkustaisin Lappiin."',
        ["on", "oli", "olisi", "ole"], 2,
        'Konditionaali: "Jos minulla olisi aikaa..."'),
    "passive": (
        'Valitse oikea muoto: "Suomessa _____ paljon kahvia."',
        ["juo", "juomme", "juodaan", "juovat"], 2,
        'Passiivi ilmaisee tekemistä ilman mainittua tekijää: "juodaan".'),
    "participles": (
        'Valitse oikea muoto: "_____ mies on opettajani." (lukea)',
        ["Lukeva", "Luettu", "Lukenut", "Luettava"], 0,
        'Aktiivin ensimmäinen partisiippi päättyy -va/-vä: "lukeva".'),
    "local_cases": (
        'Valitse oikea muoto: "Otan kirjan _____." (pöytä)',
        ["pöydällä", "pöydälle", "pöydältä", "pöydässä"], 2,
        'Ablatiivi ilmaisee liikettä pinnalta pois: "pöydältä".'),
    "potential_mood": (
        'Valitse potentiaalin muoto: "Hän _____ jo kotona."',
        ["on", "lienee", "olisi", "oli"], 1,
        'Olla-verbin potentiaali on "lienee".'),
    "temporal_cases": (
        'Valitse oikea muoto: "Tapaamme _____." (maanantai)',
        ["maanantaina", "maanantaihin", "maanantaissa", "maanantaista"], 0,
        'Essiivi ilmaisee ajankohtaa: "maanantaina".'),
    "advanced_participles": (
        'Valitse agenttipartisiippi: "Tämä on äidin _____ kakku." (leipoa)',
        ["leipoma", "leipova", "leipoman", "leivottu"], 0,
        'Agenttipartisiippi ilmaisee tekijän: "äidin leipoma kakku".'),
    "imperative_third_person": (
        'Valitse oikea muoto: "Hän _____ tänne heti!" (tulla)',
        ["tulee", "tulkoon", "tulisi", "tuli"], 1,
        'Kolmannen persoonan imperatiivi: "tulkoon".'),
    "complex_sentences": (
        'Valitse oikea rakenne: "Hän sanoi _____ väsynyt." (olla)',
        ["olevansa", "olevan", "oleva", "olla"], 0,
        'Referatiivirakenne samalla subjektilla saa possessiivisuffiksin: "olevansa".'),
    "stylistic_variation": (
        "Mikä tervehdys on tyyliltään virallisin?",
        ["Moi!", "Terve!", "Hyvää päivää!", "Morjens!"], 2,
        '"Hyvää päivää" on muodollinen tervehdys.'),
    "archaic_forms": (
        'Mitä vanhahtava muoto "sanoopi" tarkoittaa nykykielellä?',
        ["sanoi", "sanoo", "sanoisi", "sanottiin"], 1,
        'Pääte -pi on vanhahtava kolmannen persoonan pääte: "sanoopi" on "sanoo".'),
    "dialectal_features": (
        'Mitä murresana "mää" tarkoittaa yleiskielellä?',
        ["sinä", "minä", "me", "hän"], 1,
        '"Mää" on länsimurteiden muoto pronominista "minä".'),
    "literary_language": (
        'Valitse oikea lauseenvastike: "_____ hän huomasi virheensä." (lukea)',
        ["Lukiessaan", "Lukien", "Lukemalla", "Lukeakseen"], 0,
        'Temporaalirakenne ilmaisee samanaikaisuutta: "lukiessaan".'),
}

# (type, prompt, options, correct answer, explanation)
VOCABULARY_POOLS = level_table({
    CefrLevel.A1: (
        (QuestionType.MULTIPLE_CHOICE, 'Mikä sana tarkoittaa "kirja" englanniksi?',
         ["book", "table", "chair", "pen"], 0, '"Kirja" on "book" englanniksi.'),
        (QuestionType.MULTIPLE_CHOICE, 'Valitse oikea sana: "Haluan _____ kahvia."',
         ["juoda", "syödä", "lukea", "kirjoittaa"], 0, "Kahvia juodaan, ei syödä."),
        (QuestionType.FILL_BLANK, 'Kirjoita suomeksi: "dog"',
         None, "koira", '"Dog" on suomeksi "koira".'),
    ),
    CefrLevel.A2: (
        (QuestionType.MULTIPLE_CHOICE, 'Mikä sana tarkoittaa "lake"?',
         ["joki", "järvi", "meri", "metsä"], 1, '"Lake" on suomeksi "järvi".'),
        (QuestionType.MULTIPLE_CHOICE, 'Valitse sopiva sana: "Lomalla teimme _____ Lappiin."',
         ["matkan", "työn", "kirjan", "ruoan"], 0, "Lappiin tehdään matka."),
        (QuestionType.FILL_BLANK, 'Kirjoita suomeksi: "yesterday"',
         None, "eilen", '"Yesterday" on suomeksi "eilen".'),
    ),
    CefrLevel.B1: (
        (QuestionType.MULTIPLE_CHOICE, 'Mitä sana "mielipide" tarkoittaa?',
         ["opinion", "memory", "feeling", "decision"], 0, '"Mielipide" on "opinion".'),
        (QuestionType.MULTIPLE_CHOICE, 'Mikä sana liittyy sanaan "ilmastonmuutos"?',
         ["ympäristö", "leipä", "sukka", "kello"], 0, "Ilmastonmuutos on ympäristökysymys."),
        (QuestionType.FILL_BLANK, 'Kirjoita suomeksi: "person"',
         None, "ihminen", '"Person" on suomeksi "ihminen".'),
    ),
    CefrLevel.B2: (
        (QuestionType.MULTIPLE_CHOICE, 'Mitä sana "yhteiskunta" tarkoittaa?',
         ["society", "company", "village", "government"], 0, '"Yhteiskunta" on "society".'),
        (QuestionType.FILL_BLANK, 'Kirjoita suomeksi: "development"',
         None, "kehitys", '"Development" on suomeksi "kehitys".'),
    ),
    CefrLevel.C1: (
        (QuestionType.MULTIPLE_CHOICE, 'Mitä verbi "kyseenalaistaa" tarkoittaa?',
         ["to question", "to answer", "to agree", "to ignore"], 0,
         '"Kyseenalaistaa" on "to question".'),
        (QuestionType.FILL_BLANK, 'Kirjoita suomeksi: "diversity"',
         None, "monimuotoisuus", '"Diversity" on suomeksi "monimuotoisuus".'),
    ),
    CefrLevel.C2: (
        (QuestionType.MULTIPLE_CHOICE, 'Mitä sanonta "ei kala eikä lintu" tarkoittaa?',
         ["something indistinct", "a fisherman", "a birdwatcher", "something delicious"], 0,
         "Sanonta kuvaa jotakin epämääräistä."),
        (QuestionType.FILL_BLANK, 'Kirjoita suomeksi: "catalyst"',
         None, "katalysaattori", '"Catalyst" on suomeksi "katalysaattori".'),
    ),
})

# Each passage carries (type, question, options, correct answer, explanation) items
READING_PASSAGES = level_table({
    CefrLevel.A1: ({
        "title": "Esittely",
        "text": "Hei! Minun nimeni on Anna. Olen 25-vuotias ja asun Helsingissä. Työskentelen "
                "kaupassa. Vapaa-ajallani pidän lukemisesta ja uinnista.",
        "questions": (
            (QuestionType.MULTIPLE_CHOICE, "Mikä on tekstin pääajatus?",
             ["Henkilökohtainen esittely", "Ohjeita", "Mielipide", "Uutinen"], 0,
             "Anna kertoo itsestään."),
            (QuestionType.TRUE_FALSE, "Anna työskentelee kaupassa.", None, True,
             'Tekstissä sanotaan: "Työskentelen kaupassa."'),
            (QuestionType.MULTIPLE_CHOICE, "Missä Anna asuu?",
             ["Turussa", "Helsingissä", "Tampereella", "Oulussa"], 1,
             'Anna sanoo: "asun Helsingissä".'),
            (QuestionType.TRUE_FALSE, "Anna pitää hiihtämisestä.", None, False,
             "Anna pitää lukemisesta ja uinnista."),
        ),
    },),
    CefrLevel.A2: ({
        "title": "Museovierailu",
        "text": "Viime viikonloppuna kävin ystäväni kanssa museossa. Näimme siellä mielenkiintoisen "
                "näyttelyn suomalaisesta taiteesta. Museo oli täynnä ihmisiä, mutta saimme rauhassa "
                "katsella tauluja.",
        "questions": (
            (QuestionType.MULTIPLE_CHOICE, "Mikä on tekstin pääajatus?",
             ["Henkilökohtainen kokemus", "Ohjeita", "Mielipide", "Uutinen"], 0,
             "Kertoja kertoo omasta museokäynnistään."),
            (QuestionType.TRUE_FALSE, "Museossa oli vähän ihmisiä.", None, False,
             "Museo oli täynnä ihmisiä."),
            (QuestionType.MULTIPLE_CHOICE, "Millainen näyttely museossa oli?",
             ["Suomalaista taidetta", "Vanhoja autoja", "Eläimiä", "Valokuvia Ruotsista"], 0,
             "Näyttely käsitteli suomalaista taidetta."),
            (QuestionType.TRUE_FALSE, "Kertoja kävi museossa ystävänsä kanssa.", None, True,
             'Tekstissä sanotaan: "kävin ystäväni kanssa".'),
        ),
    },),
    CefrLevel.B1: ({
        "title": "Ympäristöajattelu",
        "text": "Ilmastonmuutos on yksi aikamme suurimmista haasteista. Meidän kaikkien tulisi miettiä, "
                "miten voimme omilla toimillamme vähentää hiilijalanjälkeämme. Pienet teot, kuten "
                "julkisten kulkuneuvojen käyttäminen, voivat yhdessä tehdä ison eron.",
        "questions": (
            (QuestionType.MULTIPLE_CHOICE, "Mikä on tekstin pääajatus?",
             ["Mielipide", "Ohjeita", "Henkilökohtainen tarina", "Uutinen"], 0,
             "Teksti esittää kirjoittajan näkemyksen."),
            (QuestionType.TRUE_FALSE, "Tekstissä mainitaan konkreettisia esimerkkejä.", None, True,
             "Esimerkkinä mainitaan julkisten kulkuneuvojen käyttäminen."),
            (QuestionType.MULTIPLE_CHOICE, "Mitä pienet teot voivat tekstin mukaan saada aikaan?",
             ["Ison eron", "Ei mitään", "Lisää saasteita", "Uusia lakeja"], 0,
             "Pienet teot voivat yhdessä tehdä ison eron."),
        ),
    },),
    CefrLevel.B2: ({
        "title": "Teknologian vaikutus yhteiskuntaan",
        "text": "Digitalisoituminen on muuttanut yhteiskuntaamme perusteellisesti. Vaikka teknologia on "
                "tuonut monia etuja, kuten tehokkuutta ja kätevyyttä, se on myös luonut uusia haasteita.",
        "questions": (
            (QuestionType.MULTIPLE_CHOICE, "Mikä on tekstin pääajatus?",
             ["Teknologian hyödyt ja haasteet", "Ohjeita", "Uutinen", "Matkakertomus"], 0,
             "Teksti punnitsee teknologian vaikutuksia."),
            (QuestionType.TRUE_FALSE, "Tekstin mukaan teknologialla on vain hyviä puolia.", None, False,
             "Teknologia on luonut myös uusia haasteita."),
        ),
    },),
    CefrLevel.C1: ({
        "title": "Kulttuurinen identiteetti",
        "text": "Globalisaation myötä kulttuurinen identiteetti on joutunut uudenlaisen tarkastelun "
                "kohteeksi. Perinteiset rajat hämärtyvät, ja ihmiset joutuvat pohtimaan, mikä heitä "
                "todella määrittää.",
        "questions": (
            (QuestionType.MULTIPLE_CHOICE, "Mikä on tekstin pääajatus?",
             ["Identiteetin muutos globalisaatiossa", "Ohjeita", "Uutinen", "Henkilökohtainen tarina"], 0,
             "Teksti pohtii identiteettiä globaalissa maailmassa."),
            (QuestionType.TRUE_FALSE, "Tekstin mukaan perinteiset rajat vahvistuvat.", None, False,
             "Perinteiset rajat hämärtyvät."),
        ),
    },),
    CefrLevel.C2: ({
        "title": "Taiteen rooli",
        "text": "Taide on aina heijastanut aikansa henkeä ja toiminut yhteiskunnallisen muutoksen "
                "katalysaattorina. Taiteilijat kyseenalaistavat vallitsevia normeja.",
        "questions": (
            (QuestionType.MULTIPLE_CHOICE, "Mikä on tekstin pääajatus?",
             ["Taiteen yhteiskunnallinen merkitys", "Ohjeita", "Uutinen", "Matkakertomus"], 0,
             "Teksti käsittelee taiteen roolia muutoksessa."),
            (QuestionType.TRUE_FALSE, "Taiteilijat tekstin mukaan kyseenalaistavat normeja.", None, True,
             "Tekstissä sanotaan niin suoraan."),
        ),
    },),
})

LISTENING_OPTIONS = ["Työstä", "Perheestä", "Matkustamisesta", "Ruoasta"]

LEVEL_INFO = level_table({
    CefrLevel.A1: {
        "name": "Beginner",
        "description": "Can understand and use familiar everyday expressions and very basic phrases.",
        "skills": ["Basic greetings", "Simple present tense", "Numbers and time", "Family and personal info"],
    },
    CefrLevel.A2: {
        "name": "Elementary",
        "description": "Can communicate in simple routine tasks requiring direct exchange of information.",
        "skills": ["Past tense", "Future expressions", "Shopping and services", "Describing experiences"],
    },
    CefrLevel.B1: {
        "name": "Intermediate",
        "description": "Can deal with most situations likely to arise whilst travelling in Finland.",
        "skills": ["Complex sentences", "Expressing opinions", "Conditional mood", "Abstract topics"],
    },
    CefrLevel.B2: {
        "name": "Upper Intermediate",
        "description": "Can interact with native speakers with fluency and spontaneity.",
        "skills": ["Advanced grammar", "Nuanced expressions", "Professional communication", "Complex texts"],
    },
    CefrLevel.C1: {
        "name": "Advanced",
        "description": "Can express ideas fluently and spontaneously without searching for expressions.",
        "skills": ["Subtle language use", "Academic writing", "Professional contexts", "Cultural references"],
    },
    CefrLevel.C2: {
        "name": "Proficient",
        "description": "Can understand virtually everything heard or read with ease.",
        "skills": ["Native-like fluency", "Complex literature", "Specialized topics", "Perfect accuracy"],
    },
})


def time_limit_for(level: str) -> int:
    resolved = parse_level(level)
    if resolved is None:
        return DEFAULT_TIME_LIMIT
    return TIME_LIMITS[resolved]


def section_layout() -> List[dict]:
    return [
        {"section": section.value, "questions": count, "weight": SECTION_WEIGHTS[section]}
        for section, count in SECTION_COUNTS
    ]


def level_info(level: str) -> dict:
    info = dict(for_level(LEVEL_INFO, level))
    info["sections"] = section_layout()
    return info


def _grammar_questions(level: str, count: int) -> List[ExamQuestion]:
    topics = for_level(GRAMMAR_TOPICS, level)
    questions = []
    for i in range(count):
        prompt, options, correct, explanation = GRAMMAR_TEMPLATES[topics[i % len(topics)]]
        questions.append(ExamQuestion(
            type=QuestionType.MULTIPLE_CHOICE, section=ExamSection.GRAMMAR, difficulty=level,
            prompt=prompt, options=list(options), correct_answer=correct,
            explanation=explanation, points=GRAMMAR_POINTS,
        ))
    return questions


def _vocabulary_questions(level: str, count: int, rng: random.Random) -> List[ExamQuestion]:
    pool = for_level(VOCABULARY_POOLS, level)
    questions = []
    for _ in range(count):
        qtype, prompt, options, correct, explanation = rng.choice(pool)
        questions.append(ExamQuestion(
            type=qtype, section=ExamSection.VOCABULARY, difficulty=level, prompt=prompt,
            options=list(options) if options else None, correct_answer=correct,
            explanation=explanation, points=VOCABULARY_POINTS,
        ))
    return questions


def _reading_questions(level: str, count: int) -> List[ExamQuestion]:
    items = []
    for passage in for_level(READING_PASSAGES, level):
        for item in passage["questions"]:
            items.append((passage, item))
    questions = []
    for i in range(count):
        passage, (qtype, question, options, correct, explanation) = items[i % len(items)]
        points = READING_TRUE_FALSE_POINTS if qtype == QuestionType.TRUE_FALSE else READING_CHOICE_POINTS
        questions.append(ExamQuestion(
            type=qtype, section=ExamSection.READING, difficulty=level,
            prompt=f"{passage['title']}\n\n{passage['text']}\n\n{question}",
            options=list(options) if options else None, correct_answer=correct,
            explanation=explanation, points=points,
        ))
    return questions


def _listening_questions(level: str, count: int) -> List[ExamQuestion]:
    return [
        ExamQuestion(
            type=QuestionType.MULTIPLE_CHOICE, section=ExamSection.LISTENING, difficulty=level,
            prompt=f"Kuuntele äänitiedosto {i + 1} ja vastaa: Mistä puhuja keskustelee?",
            options=list(LISTENING_OPTIONS), correct_answer=i % len(LISTENING_OPTIONS),
            explanation="Kuuntele tarkasti avainsanoja.", points=LISTENING_POINTS,
        )
        for i in range(count)
    ]


@log_performance("generate_exam")
def generate_exam(target_level: str, rng: Optional[random.Random] = None) -> ExamInstance:
    """Build the four exam sections and number the questions 1..n in section order"""
    rng = rng or random.Random()
    builders = {
        ExamSection.GRAMMAR: lambda n: _grammar_questions(target_level, n),
        ExamSection.VOCABULARY: lambda n: _vocabulary_questions(target_level, n, rng),
        ExamSection.READING: lambda n: _reading_questions(target_level, n),
        ExamSection.LISTENING: lambda n: _listening_questions(target_level, n),
    }
    questions: List[ExamQuestion] = []
    for section, count in SECTION_COUNTS:
        questions.extend(builders[section](count))
    for question_id, question in enumerate(questions, start=1):
        question.id = question_id

    return ExamInstance(
        id=f"exam_{uuid.uuid4().hex}",
        target_level=resolve_level(target_level).value,
        questions=questions,
        time_limit_minutes=time_limit_for(target_level),
    )


LEADING_INTEGER = re.compile(r"\s*([+-]?\d+)")


def _leading_int(value: Any) -> Optional[int]:
    """Integer prefix of the answer, so "2" and "2)" both read as 2"""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    match = LEADING_INTEGER.match(str(value))
    return int(match.group(1)) if match else None


def _reads_true(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() == "true"


def check_answer(question: ExamQuestion, submitted: Any) -> bool:
    if question.type == QuestionType.MULTIPLE_CHOICE:
        parsed = _leading_int(submitted)
        return parsed is not None and parsed == question.correct_answer
    if question.type == QuestionType.TRUE_FALSE:
        # anything other than true, a missing answer included, reads as false
        return _reads_true(submitted) == question.correct_answer
    if question.type == QuestionType.FILL_BLANK:
        if submitted is None:
            return False
        return str(submitted).strip().lower() == str(question.correct_answer).strip().lower()
    return False


def grade_exam(instance: ExamInstance, answers: Dict[str, Any]) -> GradedResult:
    score = 0
    max_score = 0
    correct_count = 0
    section_scores: Dict[str, SectionScore] = {}
    feedback = []

    for question in instance.questions:
        submitted = answers.get(str(question.id))
        is_correct = check_answer(question, submitted)
        section = section_scores.setdefault(question.section.value, SectionScore())

        max_score += question.points
        section.max_score += question.points
        if is_correct:
            score += question.points
            section.score += question.points
            correct_count += 1

        feedback.append(QuestionFeedback(
            question_id=question.id,
            correct=is_correct,
            submitted_value=submitted,
            correct_answer=question.correct_answer,
            explanation=question.explanation,
        ))

    percentage = round_half_up(score / max_score * 100) if max_score else 0
    return GradedResult(
        score=score,
        max_score=max_score,
        questions_correct=correct_count,
        total_questions=len(instance.questions),
        percentage=percentage,
        passed=percentage >= PASS_PERCENTAGE,
        section_scores=section_scores,
        feedback=feedback,
    )


def abandon_open_attempts(session: Session, user_id: int, now: datetime) -> int:
    """A learner has one live exam; starting another abandons the rest"""
    open_attempts = session.exec(
        select(ExamAttempt).where(ExamAttempt.user_id == user_id, ExamAttempt.status == "in_progress")
    ).all()
    for attempt in open_attempts:
        attempt.status = "abandoned"
        attempt.finished_at = now
        session.add(attempt)
    if open_attempts:
        logger.info("exam_attempts_abandoned", user_id=user_id,
                    exam_ids=[a.id for a in open_attempts])
    return len(open_attempts)


def begin_exam(session: Session, user_id: int, target_level: str,
               now: Optional[datetime] = None,
               rng: Optional[random.Random] = None) -> Tuple[ExamInstance, ExamSessionState]:
    now = now or utc_now()
    abandon_open_attempts(session, user_id, now)
    instance = generate_exam(target_level, rng=rng)
    session.add(ExamAttempt(
        id=instance.id,
        user_id=user_id,
        target_level=instance.target_level,
        time_limit_minutes=instance.time_limit_minutes,
        questions=[q.model_dump(mode="json") for q in instance.questions],
        started_at=now,
    ))
    session.commit()
    logger.info("exam_started", user_id=user_id, exam_id=instance.id, level=instance.target_level,
                questions=len(instance.questions), time_limit_minutes=instance.time_limit_minutes)
    state = ExamSessionState(
        exam_id=instance.id,
        target_level=instance.target_level,
        started_at=now,
        time_limit_minutes=instance.time_limit_minutes,
    )
    return instance, state


def load_instance(attempt: ExamAttempt) -> ExamInstance:
    return ExamInstance(
        id=attempt.id,
        target_level=attempt.target_level,
        questions=[ExamQuestion.model_validate(q) for q in attempt.questions],
        time_limit_minutes=attempt.time_limit_minutes,
    )


def submit_exam(session: Session, user_id: int, exam_id: str, answers: Dict[str, Any],
                state: Optional[ExamSessionState],
                now: Optional[datetime] = None) -> Tuple[ExamResult, GradedResult]:
    now = now or utc_now()
    if state is None or state.started_at is None or not state.target_level:
        raise InvalidSessionError("Invalid exam session")
    if state.exam_id != exam_id:
        raise InvalidSessionError("Exam session does not match the submitted exam")

    attempt = session.get(ExamAttempt, exam_id)
    if attempt is None or attempt.user_id != user_id:
        raise NotFoundError(f"Exam {exam_id} not found")
    if attempt.status != "in_progress":
        raise InvalidSessionError(f"Exam {exam_id} is already {attempt.status}")

    elapsed = now - as_utc(state.started_at)
    if elapsed > timedelta(minutes=attempt.time_limit_minutes):
        attempt.status = "abandoned"
        attempt.finished_at = now
        session.add(attempt)
        session.commit()
        logger.warning("exam_time_limit_exceeded", user_id=user_id, exam_id=exam_id,
                       elapsed_minutes=round(elapsed.total_seconds() / 60, 1))
        raise InvalidSessionError("Exam time limit exceeded")

    graded = grade_exam(load_instance(attempt), answers)
    result = ExamResult(
        user_id=user_id,
        target_level=state.target_level,
        score=graded.score,
        max_score=graded.max_score,
        questions_correct=graded.questions_correct,
        total_questions=graded.total_questions,
        time_spent_minutes=round_half_up(elapsed.total_seconds() / 60),
        sections={name: s.model_dump() for name, s in graded.section_scores.items()},
        created_at=now,
    )
    attempt.status = "submitted"
    attempt.finished_at = now
    session.add(attempt)
    session.add(result)
    session.commit()
    session.refresh(result)

    logger.info("exam_graded", user_id=user_id, exam_id=exam_id, level=state.target_level,
                score=graded.score, max_score=graded.max_score, passed=graded.passed)
    return result, graded


def get_result(session: Session, user_id: int, result_id: int) -> ExamResult:
    result = session.get(ExamResult, result_id)
    if result is None or result.user_id != user_id:
        raise NotFoundError(f"Exam result {result_id} not found")
    return result


def result_payload(result: ExamResult) -> dict:
    return {
        "id": result.id,
        "exam_type": result.exam_type,
        "target_level": result.target_level,
        "score": result.score,
        "max_score": result.max_score,
        "percentage": result.percentage,
        "passed": result.passed,
        "questions_correct": result.questions_correct,
        "total_questions": result.total_questions,
        "time_spent_minutes": result.time_spent_minutes,
        "section_scores": result.sections,
        "created_at": result.created_at.isoformat(),
    }


def history(session: Session, user_id: int, page: int = 1, per_page: int = 20) -> dict:
    total = session.exec(
        select(func.count()).select_from(ExamResult).where(ExamResult.user_id == user_id)
    ).one()
    results = session.exec(
        select(ExamResult)
        .where(ExamResult.user_id == user_id)
        .order_by(ExamResult.created_at.desc(), ExamResult.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()
    return {
        "page": page,
        "per_page": per_page,
        "total": total,
        "results": [result_payload(r) for r in results],
    }


def average_scores(session: Session, user_id: int) -> dict:
    rows = session.exec(
        select(ExamResult.target_level, func.avg(ExamResult.score), func.count())
        .where(ExamResult.user_id == user_id)
        .group_by(ExamResult.target_level)
    ).all()
    return {
        level: {"average": round_half_up(float(avg or 0)), "attempts": attempts}
        for level, avg, attempts in rows
    }


def detailed_stats(session: Session, user_id: int) -> dict:
    results = session.exec(
        select(ExamResult)
        .where(ExamResult.user_id == user_id)
        .order_by(ExamResult.created_at.desc(), ExamResult.id.desc())
    ).all()
    total = len(results)
    average = round_half_up(sum(r.percentage for r in results) / total) if total else 0

    level_progress: Dict[str, dict] = {}
    for result in results:
        level = level_progress.setdefault(
            result.target_level, {"attempts": 0, "best_score": 0, "average_score": 0, "passed": 0, "_sum": 0}
        )
        level["attempts"] += 1
        level["best_score"] = max(level["best_score"], result.percentage)
        level["_sum"] += result.percentage
        if result.passed:
            level["passed"] += 1
    for level in level_progress.values():
        level["average_score"] = round_half_up(level.pop("_sum") / level["attempts"])

    return {
        "total_exams": total,
        "average_score": average,
        "level_progress": level_progress,
        "recent_trend": [
            {"date": r.created_at.strftime("%Y-%m-%d"), "score": r.percentage, "level": r.target_level}
            for r in reversed(results[:5])
        ],
    }
