"""
PI template registry: the base performance-indicator definitions, their
year-specific variants, and (de)serialization of runtime custom templates.
"""
import math
from dataclasses import dataclass, field
from typing import Optional

from pi_dashboard.config import MONTHS_PER_YEAR, NEW_ACTIVITY_NAME, NEW_INDICATOR_NAME


@dataclass(frozen=True)
class ActivityTemplate:
    id: str
    name: str
    indicator: str
    defaults: tuple = field(default=(0,) * MONTHS_PER_YEAR)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'indicator': self.indicator,
            'defaults': list(self.defaults),
        }


@dataclass(frozen=True)
class PITemplate:
    id: str
    title: str
    activities: tuple = ()
    custom: bool = False

    def activity(self, activity_id: str) -> Optional[ActivityTemplate]:
        for act in self.activities:
            if act.id == activity_id:
                return act
        return None

    @property
    def activity_ids(self) -> list:
        return [act.id for act in self.activities]

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'activities': [act.to_dict() for act in self.activities],
        }


def _fill(value):
    return (value,) * MONTHS_PER_YEAR


def _pi(title, *rows):
    return {'title': title, 'activities': rows}


# Base definitions: (activity id, activity, indicator, 12 monthly defaults)
BASE_PI_DEFINITIONS = {
    'PI1': _pi(
        "Number of Community Awareness/Information Activities Initiated",
        ("pi1_a1", "Formulation of Stratcom Snapshots", "No. of stratcom snapshot formulated", _fill(1)),
        ("pi1_a2", "Social Media Analysis", "No. of Social Media Analysis conducted", _fill(13)),
        ("pi1_a3", "Implementation of IO", "No. of activities conducted", _fill(9)),
        ("pi1_a4", "Conduct of P.I.C.E.", "No. of PICE conducted", _fill(54)),
        ("pi1_a5", "Production of Leaflets and handouts as IEC Materials", "No. of Printed copies", _fill(688)),
        ("pi1_a6", "Production of Outdoor IEC Materials", "No. of Streamers and Tarpaulins, or LED Wall Displayed", _fill(25)),
        ("pi1_a7", "Face-to-face Awareness Activities", "No. of Face-to-face Awareness conducted", _fill(51)),
        ("pi1_a8", "Dissemination of related news articles", "No. of emails and SMS sent", _fill(36)),
        ("pi1_a9", "Management of PNP Social Media Pages and Accounts", "No. of account followers", _fill(10)),
        ("pi1_a10", "Social Media Post Boosting", "No. of target audience reached", _fill(600)),
        ("pi1_a11", "Social Media Engagement", "No. of Engagement", _fill(38)),
        ("pi1_a12", "Radio/TV/Live Streaming", "No. of guesting/show", _fill(15)),
        ("pi1_a13", "Press Briefing", "No. of Press Briefing to be conducted", _fill(16)),
        ("pi1_a14", "Reproduction and Distribution of GAD-Related IEC Materials", "No. of copies GAD-Related IEC Materials to be distributed", _fill(15)),
        ("pi1_a15", "Conduct Awareness activity relative to clan/family feuds settlement", "No. of Awareness activity relative to clan/family feuds", _fill(13)),
        ("pi1_a16", "Lectures on Islamic Religious and Cultural Sensitivity", "No. of Lectures on Islamic Religious and Cultural Sensitivity", _fill(19)),
        ("pi1_a17", "Dialogue on Peacebuilding and Counter Radicalization", "No. of Dialogue on Peacebuilding and Counter Radicalization", _fill(17)),
    ),
    'PI2': _pi(
        "Number of sectoral groups/BPATs mobilized/organized",
        ("pi2_a1", "collaborative efforts with NGOs, CSOs, GAs and Non-GAs", "No. of collaborative efforts activities conducted",
         (46, 43, 33, 33, 34, 35, 27, 26, 27, 27, 10, 25)),
    ),
    'PI3': _pi(
        "Number of participating respondents",
        ("pi3_a1", "Secretariat Meetings", "No Secretariat Meetings conducted", _fill(5)),
        ("pi3_a2", "Convening of IO Working Group", "No. of activities conducted", _fill(6)),
        ("pi3_a3", "Activation of SyncCom during major events", "No. of activities conducted", _fill(8)),
        ("pi3_a4", "Summing-up on Revitalized-Pulis Sa Barangay (R-PSB)", "No. of summing-up conducted", _fill(10)),
        ("pi3_a5", "Summing-up on Counter White Area Operations (CWAO)", "No. of summing-up conducted", _fill(5)),
        ("pi3_a6", "StratCom support to NTF-ELCAC", "No. of activities conducted", _fill(4)),
        ("pi3_a7", "PNP Good Deeds", "No. of PNP Good Deeds", _fill(15)),
        ("pi3_a8", "Drug Awareness Activities", "No. of activities conducted", _fill(9)),
        ("pi3_a9", "National Children's Month", "No. of activities conducted", _fill(6)),
    ),
    'PI4': _pi(
        "Percentage of accounted loose firearms against the estimated baseline data",
        ("pi4_a1", "JAPIC", "JAPIC conducted", (0, 0, 1, 0, 0, 0, 0, 0, 1, 0, 0, 0)),
        ("pi4_a2", "Operations on loose firearms", "Operations on loose firearms conducted", _fill(3)),
        ("pi4_a3", "Bakal/Sita", "Bakal/Sita conducted", _fill(750)),
    ),
    'PI5': _pi(
        "Number of functional LACAP",
        ("pi5_a1", "P/CPOC meetings", "# P/CPOC meetings participated", _fill(10)),
        ("pi5_a2", "Oversight Committee Meetings", "# of Oversight Committee Meetings conducted", _fill(43)),
        ("pi5_a3", "operations against illegal gambling", "# of operations against illegal gambling conducted", _fill(10)),
        ("pi5_a4", "operations on anti-illegal drugs", "# of operations on anti-illegal drugs conducted", _fill(55)),
    ),
    'PI6': _pi(
        "Number of police stations utilizing PIPS",
        ("pi6_a1", "EMPO Assessment and Evaluations", "No. of EMPO Assessment and Evaluations conducted", _fill(53)),
        ("pi6_a2", "Field/sector inspection", "No. of Field/sector inspection conducted", _fill(138)),
    ),
    'PI7': _pi(
        "Number of Internal Security Operations conducted",
        ("pi7_a1", "JPSCC meetings", "JPSCC meetings conducted", _fill(4)),
        ("pi7_a2", "PPSP", "PPSP conducted", _fill(30)),
    ),
    'PI8': _pi(
        "Number of target hardening measures conducted",
        ("pi8_a1", "Security Survey/Inspection", "# of Security Survey/Inspection conducted", _fill(2)),
        ("pi8_a2", "CI check/validation", "# of CI check/validation conducted", _fill(18)),
        ("pi8_a3", "Clearances issued to civilians", "# of Clearances issued to civilians", _fill(3500)),
        ("pi8_a4", "# of beat/foot patrols conducted", "# of beat/foot patrols conducted", _fill(6142)),
        ("pi8_a5", "# of mobile patrols conducted", "# of mobile patrols conducted", _fill(640)),
        ("pi8_a6", "# of checkpoints conducted", "# of checkpoints conducted", _fill(700)),
    ),
    'PI9': _pi(
        "Percentage reduction of crimes involving foreign and domestic tourists",
        ("pi9_a1", "Maintenance of TPU", "# of TPU maintained", _fill(1)),
        ("pi9_a2", "Maintenance of TAC", "# of TAC maintained", _fill(1)),
        ("pi9_a3", "Maintenance of TAD", "# of TAD maintained", _fill(3)),
    ),
    'PI10': _pi(
        "Number of Police stations using COMPSTAT for crime prevention",
        ("pi10_a1", "Crime Information Reporting and Analysis System", "No. of Crime Information Reporting and Analysis System data recorded", _fill(300)),
        ("pi10_a2", "e-Wanted Persons Information System", "No. of Wanted Persons recorded", _fill(100)),
        ("pi10_a3", "e-Rogues' Gallery System", "No. of eRogues recorded", _fill(170)),
    ),
    'PI11': _pi(
        "Number of threat group neutralized",
        ("pi11_a1", "HVTs neutralized", "HVTs neutralized", _fill(4)),
        ("pi11_a2", "IRs (criminality) for validation referred", "IRs (criminality) for validation referred", _fill(45)),
    ),
    'PI12': _pi(
        "Number of utilized BINs",
        ("pi12_a1", "# of inventory made", "# of inventory made", _fill(35)),
        ("pi12_a2", "# of BINs documented/registered and maintained", "# of BINs documented/registered and maintained", _fill(35)),
    ),
    'PI13': _pi(
        "Number of criminal cases filed",
        ("pi13_a1", "Total cases filed", "Total cases filed", _fill(0)),
    ),
    'PI14': _pi(
        "Number of cases resulting to conviction/dismissal",
        ("pi14_a1", "Monitoring of Filed Cases", "Monitoring of Filed Cases", _fill(0)),
    ),
    'PI15': _pi(
        "Percentage of Trained investigative personnel",
        ("pi15_a1", "Nr. of Inventory Conducted for investigators (CIC)", "CIC", _fill(90)),
        ("pi15_a2", "Nr. of Inventory Conducted for investigators (IOBC)", "IOBC", _fill(14)),
    ),
    'PI16': _pi(
        "Percentage of investigative positions filled up with trained investigators",
        ("pi16_a1", "Screening and evaluation of candidates", "# of screening and evaluation conducted", _fill(0)),
    ),
    'PI17': _pi(
        "Improvement in response time",
        ("pi17_a1", "Repair of patrol vehicles", "# of patrol vehicles repaired", _fill(0)),
        ("pi17_a2", "Change oil of patrol vehicles", "# of change oil made", _fill(0)),
        ("pi17_a3", "Maintenance of OPCEN", "# of OPCEN maintained", _fill(0)),
    ),
    'PI18': _pi(
        "Percentage of dedicated investigators assigned to handle specific cases",
        ("pi18_a1", "Conduct case build up and investigation", "Percentage", _fill(100)),
    ),
    'PI19': _pi(
        "Number of recipients of a. awards b. punished",
        ("pi19_a1", "Monday Flag Raising/Awarding Ceremony", "# of Monday Flag Raising/Awarding Ceremony conducted", _fill(4)),
        ("pi19_a2", "Issuing commendations", "# of commendations issued", _fill(100)),
    ),
    'PI20': _pi(
        "Percentage of investigative personnel equipped with standard investigative systems",
        ("pi20_a1", "Attendance in specialized training", "Percentage", _fill(100)),
    ),
    'PI21': _pi(
        "Percentage of Police Stations using e-based system",
        ("pi21_a1", "Total Stations", "Total", _fill(550)),
    ),
    'PI22': _pi(
        "Number of cases filed in court/total # of cases investigated",
        ("pi22_a1", "Index Crime Investigated", "No. Of Index Crime Investigated", _fill(30)),
        ("pi22_a2", "Index Crime Filed", "No. Of Index Crime Filed", _fill(28)),
    ),
    'PI23': _pi(
        "Number of investigative infrastructure/equipment identified/accounted",
        ("pi23_a1", "Inventory, inspection & Accounting", "# of Inventory, inspection & Accounting conducted", _fill(1)),
    ),
    'PI24': _pi(
        "Percentage of fill- up of investigative equipment and infrastructure",
        ("pi24_a1", "Field investigative crime scene kit", "No. of Field investigative crime scene kit accounted", _fill(21)),
        ("pi24_a2", "Police line", "No. of Police line accounted", _fill(45)),
    ),
    'PI25': _pi(
        "Percentage of IT- compliant stations",
        ("pi25_a1", "computer preventive maintenance", "# of computer preventive maintenance conducted", _fill(210)),
        ("pi25_a2", "Maintenance of printers", "# of printers maintained", _fill(95)),
    ),
    'PI26': _pi(
        "Number of linkages established",
        ("pi26_a1", "JSCC meetings", "No. of JSCC meetings conducted", _fill(1)),
    ),
    'PI27': _pi(
        "Number of community/ stakeholders support generated",
        ("pi27_a1", "Memorandum of Agreement signing", "No. of MOA/MOU signing initiated", _fill(9)),
        ("pi27_a2", "Support to bloodletting activity", "No of Support to bloodletting activity conducted", _fill(5)),
    ),
    'PI28': _pi(
        "Number of investigative activities funded",
        ("pi28_a1", "Monitoring and Investigation of Violation of Specials laws", "No. of Investigation monitored", _fill(110)),
    ),
    'PI29': _pi(
        "Number of special investigation cases requested for fund support",
        ("pi29_a1", "Creation and activation of SITG Cases", "# of SITG Cases Created and Activated",
         (0, 0, 0, 0, 0, 0, 0, 0, 0, 1, 0, 0)),
    ),
}

# Year-specific activity sets replacing the base rows for a PI
YEAR_VARIANTS = {
    '2026': {
        'PI1': (
            ("pi1_26_1", "Formulation of Stratcom Snapshots", "No. of stratcom snapshot formulated", _fill(1)),
            ("pi1_26_2", "Social Media Analysis", "No. of Social Media Analysis conducted", _fill(13)),
            ("pi1_26_3", "Conduct of P.I.C.E.", "No. of PICE conducted", _fill(54)),
            ("pi1_26_4", "Face-to-face Awareness Activities", "No. of Face-to-face Awareness conducted", _fill(51)),
            ("pi1_26_5", "Press Briefing", "No. of Press Briefing to be conducted", _fill(16)),
            ("pi1_26_6", "Dialogue on Peacebuilding and Counter Radicalization", "No. of Dialogue on Peacebuilding and Counter Radicalization", _fill(17)),
        ),
        'PI3': (
            ("pi3_26_1", "Secretariat Meetings", "No. of Secretariat Meetings conducted", _fill(5)),
            ("pi3_26_2", "Convening of IO Working Group", "No. of activities conducted", _fill(6)),
            ("pi3_26_3", "PNP Good Deeds", "No. of PNP Good Deeds", _fill(15)),
            ("pi3_26_4", "Drug Awareness Activities", "No. of activities conducted", _fill(9)),
        ),
    },
}

STANDARD_PI_IDS = list(BASE_PI_DEFINITIONS.keys())

# Templates whose values are percentages: combined by rounded averaging
PERCENTAGE_PI_IDS = frozenset([
    'PI4', 'PI9', 'PI15', 'PI16', 'PI18', 'PI20', 'PI21', 'PI24', 'PI25',
])


def is_percentage_template(template_id: str) -> bool:
    return template_id in PERCENTAGE_PI_IDS


def _activities(rows) -> tuple:
    return tuple(ActivityTemplate(aid, name, indicator, tuple(defaults))
                 for aid, name, indicator, defaults in rows)


def get_base_templates(year) -> list:
    """Base templates for a year, in registry order, with that year's variants applied."""
    variants = YEAR_VARIANTS.get(str(year), {})
    templates = []
    for pi_id, definition in BASE_PI_DEFINITIONS.items():
        rows = variants.get(pi_id, definition['activities'])
        templates.append(PITemplate(pi_id, definition['title'], _activities(rows)))
    return templates


def _stored_default(value) -> int:
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return 0


def template_from_dict(data: dict) -> PITemplate:
    """
    Build a custom template from its stored definition.
    Raises ValueError when the definition has no usable id.
    """
    if not isinstance(data, dict) or not isinstance(data.get('id'), str) or not data['id']:
        raise ValueError(f"Invalid template definition: {data!r}")

    activities = []
    for raw in data.get('activities') or []:
        if not isinstance(raw, dict) or not isinstance(raw.get('id'), str):
            continue
        defaults = raw.get('defaults')
        if not isinstance(defaults, list) or len(defaults) != MONTHS_PER_YEAR:
            defaults = [0] * MONTHS_PER_YEAR
        activities.append(ActivityTemplate(
            raw['id'],
            raw.get('name') or NEW_ACTIVITY_NAME,
            raw.get('indicator') or NEW_INDICATOR_NAME,
            tuple(_stored_default(v) for v in defaults),
        ))

    return PITemplate(data['id'], data.get('title') or data['id'], tuple(activities), custom=True)
