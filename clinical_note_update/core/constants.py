"""
Constants for Clinical Note Selective Update

This module defines constant values used throughout the selective update
pipeline. Constants are:
    1. Centralized for easy modification
    2. Plain data (editable tables, not code branches)
    3. Documented with usage context

Constant Categories:
    SECTION_TITLES            → Canonical display title per section type
    SECTION_GROUPS            → Grouping of section types for reporting
    SECTION_ALIASES           → Heading aliases per section type (alias table)
    SECTION_KEYWORD_BAGS      → Body keywords for heuristic classification
    SOAP_BUCKET_LEXICONS      → Lexicons for the no-heading fallback split
    EMR_SYNTAX_PATTERNS       → Vendor placeholder syntaxes (regex, replacement)
    SECTION_UPDATE_INSTRUCTIONS → Per-section guidance for regeneration prompts

Author: Shubham Singh
Date: December 2025
"""

from typing import Dict, List, Tuple

from clinical_note_update.core.enums import SectionType


# =============================================================================
# STAGE 1: SECTION TITLES AND GROUPS
# =============================================================================
# Canonical titles double as the "exact" tier of the alias table: a heading
# equal to one of these (case-insensitive) resolves with confidence 1.0.

SECTION_TITLES: Dict[SectionType, str] = {
    SectionType.BASIC_DEMO_INFO: "Basic Demo Information",
    SectionType.DIAGNOSIS: "Diagnosis",
    SectionType.IDENTIFYING_INFO: "Identifying Information",
    SectionType.CURRENT_MEDICATIONS: "Current Medications",
    SectionType.BH_PRIOR_MEDS_TRIED: "Behavioral Health Prior Meds Tried",
    SectionType.MEDICATIONS_PLAN: "Medication Plan",
    SectionType.CHIEF_COMPLAINT: "Chief Complaint",
    SectionType.HPI: "History of Present Illness",
    SectionType.REVIEW_OF_SYSTEMS: "Review of Systems",
    SectionType.PSYCHIATRIC_EXAM: "Psychiatric Exam",
    SectionType.QUESTIONNAIRES_SURVEYS: "Questionnaires/Surveys",
    SectionType.MEDICAL: "Medical",
    SectionType.PHYSICAL_EXAM: "Physical Exam",
    SectionType.VITALS: "Vital Signs",
    SectionType.ALLERGIES: "Allergies",
    SectionType.SOCIAL_HISTORY: "Social History",
    SectionType.FAMILY_HISTORY: "Family History",
    SectionType.RISKS: "Risks",
    SectionType.ASSESSMENT_AND_PLAN: "Assessment and Plan",
    SectionType.PSYCHOSOCIAL: "Psychosocial",
    SectionType.SAFETY_PLAN: "Safety Plan",
    SectionType.PROGNOSIS: "Prognosis",
    SectionType.FOLLOW_UP: "Follow-Up",
    SectionType.SUBJECTIVE: "Subjective",
    SectionType.OBJECTIVE: "Objective",
    SectionType.ASSESSMENT: "Assessment",
    SectionType.PLAN: "Plan",
    SectionType.HEADER: "Header",
    SectionType.OTHER: "Other",
    SectionType.UNSTRUCTURED: "Unstructured",
}

SECTION_GROUPS: Dict[str, Tuple[SectionType, ...]] = {
    "PATIENT_INFO": (
        SectionType.BASIC_DEMO_INFO,
        SectionType.DIAGNOSIS,
        SectionType.IDENTIFYING_INFO,
    ),
    "MEDICATIONS": (
        SectionType.CURRENT_MEDICATIONS,
        SectionType.BH_PRIOR_MEDS_TRIED,
        SectionType.MEDICATIONS_PLAN,
    ),
    "CLINICAL_ASSESSMENT": (
        SectionType.CHIEF_COMPLAINT,
        SectionType.HPI,
        SectionType.REVIEW_OF_SYSTEMS,
        SectionType.PSYCHIATRIC_EXAM,
        SectionType.QUESTIONNAIRES_SURVEYS,
    ),
    "EXAMINATION": (
        SectionType.MEDICAL,
        SectionType.PHYSICAL_EXAM,
        SectionType.VITALS,
        SectionType.ALLERGIES,
        SectionType.SOCIAL_HISTORY,
        SectionType.FAMILY_HISTORY,
    ),
    "PLAN_AND_SAFETY": (
        SectionType.RISKS,
        SectionType.ASSESSMENT_AND_PLAN,
        SectionType.PSYCHOSOCIAL,
        SectionType.SAFETY_PLAN,
    ),
    "FOLLOW_UP": (SectionType.PROGNOSIS, SectionType.FOLLOW_UP),
    "LEGACY_SOAP": (
        SectionType.SUBJECTIVE,
        SectionType.OBJECTIVE,
        SectionType.ASSESSMENT,
        SectionType.PLAN,
    ),
}

# Fixed order for sections synthesized by the no-heading fallback.
SOAP_ORDER: Tuple[SectionType, ...] = (
    SectionType.SUBJECTIVE,
    SectionType.OBJECTIVE,
    SectionType.ASSESSMENT,
    SectionType.PLAN,
)


# =============================================================================
# STAGE 2: ALIAS TABLE DATA
# =============================================================================
# Lower-case heading aliases, without trailing colons. Declaration order is
# significant: when one heading matches aliases of several types with the
# same length, the type declared first wins.

SECTION_ALIASES: Dict[SectionType, List[str]] = {
    # -------------------------------------------------------------------------
    # 2.1 Patient Information
    # -------------------------------------------------------------------------
    SectionType.BASIC_DEMO_INFO: [
        "demographics",
        "patient information",
        "patient info",
        "basic information",
        "basic demographic information",
        "patient data",
    ],
    SectionType.DIAGNOSIS: [
        "diagnoses",
        "primary diagnosis",
        "psychiatric diagnosis",
        "psychiatric diagnoses",
        "working diagnosis",
        "dsm-5",
        "dsm-5 diagnoses",
    ],
    SectionType.IDENTIFYING_INFO: [
        "identifying info",
        "social demographics",
        "background",
        "occupation",
    ],
    # -------------------------------------------------------------------------
    # 2.2 Medications
    # -------------------------------------------------------------------------
    SectionType.CURRENT_MEDICATIONS: [
        "medications",
        "meds",
        "current meds",
        "medication list",
        "active medications",
        "home medications",
    ],
    SectionType.BH_PRIOR_MEDS_TRIED: [
        "behavioral health prior meds tried",
        "bh prior meds tried",
        "prior meds tried",
        "previous medications",
        "prior meds",
        "medication history",
        "past medications",
        "prior medication trials",
    ],
    SectionType.MEDICATIONS_PLAN: [
        "medication changes",
        "medications plan",
        "prescription changes",
        "new medications",
        "medication management",
        "med changes",
    ],
    # -------------------------------------------------------------------------
    # 2.3 Clinical Assessment
    # -------------------------------------------------------------------------
    SectionType.CHIEF_COMPLAINT: [
        "cc",
        "chief concern",
        "presenting concern",
        "reason for visit",
    ],
    SectionType.HPI: [
        "hpi",
        "present illness",
        "history of presenting illness",
        "interval history",
    ],
    SectionType.REVIEW_OF_SYSTEMS: [
        "ros",
        "systems review",
        "symptom review",
        "review of symptoms",
    ],
    SectionType.PSYCHIATRIC_EXAM: [
        "mental status exam",
        "mental status examination",
        "mental status",
        "mse",
        "psychiatric examination",
        "psych exam",
    ],
    SectionType.QUESTIONNAIRES_SURVEYS: [
        "questionnaires",
        "surveys",
        "assessment scales",
        "rating scales",
        "screening tools",
    ],
    # -------------------------------------------------------------------------
    # 2.4 Examination and History
    # -------------------------------------------------------------------------
    SectionType.MEDICAL: [
        "medical history",
        "past medical history",
        "pmh",
        "medical update",
        "medical conditions",
    ],
    SectionType.PHYSICAL_EXAM: [
        "physical examination",
        "pe",
        "physical findings",
        "physical assessment",
    ],
    SectionType.VITALS: ["vitals", "vs", "vital statistics"],
    SectionType.ALLERGIES: ["allergy", "drug allergies"],
    SectionType.SOCIAL_HISTORY: ["social hx", "sh"],
    SectionType.FAMILY_HISTORY: ["family hx", "fh"],
    # -------------------------------------------------------------------------
    # 2.5 Plan and Safety
    # -------------------------------------------------------------------------
    SectionType.RISKS: [
        "risk assessment",
        "suicide risk assessment",
        "safety risk",
        "risk factors",
        "risk evaluation",
    ],
    SectionType.ASSESSMENT_AND_PLAN: [
        "assessment & plan",
        "assessment/plan",
        "a&p",
        "a/p",
        "clinical assessment",
        "treatment plan",
    ],
    SectionType.PSYCHOSOCIAL: [
        "therapy",
        "psychotherapy",
        "counseling",
        "social interventions",
        "therapeutic interventions",
    ],
    SectionType.SAFETY_PLAN: [
        "crisis plan",
        "safety planning",
        "emergency plan",
    ],
    # -------------------------------------------------------------------------
    # 2.6 Follow-up
    # -------------------------------------------------------------------------
    SectionType.PROGNOSIS: ["outlook", "clinical prognosis", "expected outcome"],
    SectionType.FOLLOW_UP: [
        "follow up",
        "followup",
        "follow-up plan",
        "next appointment",
        "return visit",
    ],
    # -------------------------------------------------------------------------
    # 2.7 SOAP Layout
    # -------------------------------------------------------------------------
    SectionType.SUBJECTIVE: ["s"],
    SectionType.OBJECTIVE: ["o"],
    SectionType.ASSESSMENT: ["a", "impression"],
    SectionType.PLAN: ["p"],
}

# Inline headings ("HPI: patient reports ...") and prefix matches ("Plan for
# next visit") only use aliases at least this long; single letters and
# two-letter abbreviations must stand on their own line.
MIN_PREFIX_ALIAS_LENGTH = 3

# Heading lines longer than this are treated as body text.
MAX_HEADING_LENGTH = 80

# Unresolved ALL-CAPS lines longer than this are treated as body text.
MAX_HEADING_WORDS = 8


# =============================================================================
# STAGE 3: KEYWORD BAGS (HEURISTIC TIER)
# =============================================================================
# A heading absent from the alias table is classified by its body when the
# body contains at least MIN_KEYWORD_HITS distinct keywords of one bag.

MIN_KEYWORD_HITS = 2

SECTION_KEYWORD_BAGS: Dict[SectionType, List[str]] = {
    SectionType.HPI: [
        "presents",
        "reports",
        "onset",
        "since last visit",
        "last appointment",
        "symptoms",
        "started",
    ],
    SectionType.REVIEW_OF_SYSTEMS: [
        "sleep",
        "appetite",
        "energy",
        "concentration",
        "denies",
        "anhedonia",
    ],
    SectionType.PSYCHIATRIC_EXAM: [
        "appearance",
        "affect",
        "thought process",
        "thought content",
        "insight",
        "judgment",
        "speech",
        "oriented",
    ],
    SectionType.CURRENT_MEDICATIONS: ["mg", "daily", "tablet", "bid", "qhs", "prn"],
    SectionType.MEDICATIONS_PLAN: [
        "increase",
        "decrease",
        "titrate",
        "discontinue",
        "refill",
        "risks and benefits",
    ],
    SectionType.RISKS: [
        "suicidal",
        "homicidal",
        "self-harm",
        "protective factors",
        "risk factors",
        "ideation",
    ],
    SectionType.SAFETY_PLAN: ["crisis", "hotline", "988", "emergency contact", "coping"],
    SectionType.DIAGNOSIS: ["disorder", "dsm", "episode", "unspecified", "recurrent"],
    SectionType.QUESTIONNAIRES_SURVEYS: ["phq-9", "gad-7", "score", "questionnaire"],
    SectionType.VITALS: ["bp", "pulse", "heart rate", "temperature", "spo2", "weight"],
    SectionType.ALLERGIES: ["nkda", "allergic", "allergies", "reaction"],
    SectionType.SOCIAL_HISTORY: ["lives with", "employed", "alcohol", "tobacco", "married"],
    SectionType.FAMILY_HISTORY: ["mother", "father", "sibling", "family history"],
    SectionType.PHYSICAL_EXAM: ["heent", "lungs", "heart", "abdomen", "extremities"],
    SectionType.ASSESSMENT_AND_PLAN: [
        "impression",
        "diagnosis",
        "plan",
        "recommend",
        "continue",
    ],
    SectionType.FOLLOW_UP: ["return", "follow up", "follow-up", "weeks", "appointment"],
}


# =============================================================================
# STAGE 4: SOAP BUCKET LEXICONS (NO-HEADING FALLBACK)
# =============================================================================

SOAP_BUCKET_LEXICONS: Dict[SectionType, List[str]] = {
    SectionType.SUBJECTIVE: [
        "reports",
        "states",
        "describes",
        "complains",
        "feeling",
        "endorses",
        "denies",
        "patient says",
    ],
    SectionType.OBJECTIVE: [
        "appears",
        "observed",
        "mental status",
        "vital signs",
        "examination",
        "alert",
        "oriented",
        "blood pressure",
        "bp",
        "hr",
        "temp",
        "vitals",
        "exam",
    ],
    SectionType.ASSESSMENT: [
        "diagnosis",
        "impression",
        "assessment",
        "disorder",
        "condition",
        "consistent with",
    ],
    SectionType.PLAN: [
        "plan",
        "treatment",
        "medication",
        "therapy",
        "follow-up",
        "follow up",
        "recommend",
        "continue",
        "return",
    ],
}

# Confidence ceiling for sections synthesized without any heading.
FALLBACK_CONFIDENCE_CAP = 0.5

NO_HEADINGS_WARNING = "no recognized section headings; heuristic split applied"


# =============================================================================
# STAGE 5: EMR SYNTAX PATTERNS
# =============================================================================
# Vendor placeholder syntaxes. Each entry: (regex, replacement, description).
# Replacements are plain-text equivalents used by deterministic sanitization.

EMR_SYNTAX_PATTERNS: Dict[str, Tuple[str, str, str]] = {
    "smartphrase": (
        r"@[A-Z][A-Z0-9]*[A-Z]@",
        "",
        "Epic SmartPhrase (@NAME@)",
    ),
    "smartlink": (
        r"(?<![\w@])@[A-Z][A-Z0-9_]*\b(?!@)",
        "",
        "Epic SmartLink (@NAME)",
    ),
    "dotphrase": (
        r"(?<![\w.])\.[a-z][a-z0-9]*[a-z]\b",
        "",
        "Epic DotPhrase (.phrase)",
    ),
    "smartlist": (
        r"\{[A-Za-z][A-Za-z ]*:\d+\}",
        "",
        "Epic SmartList ({List:123})",
    ),
    "wildcard": (
        r"\*\*\*",
        "",
        "Epic wildcard (***)",
    ),
    "epic_terminology": (
        r"(?i)\b(?:smartphrase|smartlist|smartlink|dotphrase)s?\b",
        "template",
        "Epic template terminology",
    ),
    "bracketed_placeholder": (
        r"(?i)\[(?:to be documented|tbd|todo|placeholder)\]",
        "",
        "Unfilled bracketed placeholder ([TBD])",
    ),
}

CREDIBLE_FORBIDDEN_SYNTAX: Tuple[str, ...] = (
    "smartphrase",
    "smartlink",
    "dotphrase",
    "smartlist",
    "wildcard",
    "epic_terminology",
)

# Syntax that only an Epic export carries; any hit marks the source note as Epic.
EPIC_NATIVE_SYNTAX: Tuple[str, ...] = (
    "smartphrase",
    "smartlink",
    "dotphrase",
    "smartlist",
    "wildcard",
)

SOURCE_EMR_EPIC = "epic"
SOURCE_EMR_PLAIN = "plain"


# =============================================================================
# STAGE 6: SOFT VALIDATION BOUNDS
# =============================================================================

DEFAULT_MIN_NOTE_LENGTH = 200
DEFAULT_MAX_NOTE_LENGTH = 15000


# =============================================================================
# STAGE 7: SECTION UPDATE INSTRUCTIONS
# =============================================================================
# Guidance attached to each section the generator is allowed to change.

SECTION_UPDATE_INSTRUCTIONS: Dict[SectionType, str] = {
    SectionType.HPI: (
        "Update with current visit information: reason for visit, patient's "
        "current status and reports, changes since last appointment, response "
        "to the previous treatment plan."
    ),
    SectionType.REVIEW_OF_SYSTEMS: (
        "Update the current symptom review: mood, sleep, appetite, energy, "
        "anxiety, any new or changed symptoms."
    ),
    SectionType.PSYCHIATRIC_EXAM: (
        "Update mental status findings: appearance and behavior, mood and "
        "affect, thought process and content, cognition, insight and judgment."
    ),
    SectionType.ASSESSMENT_AND_PLAN: (
        "Update diagnostic impressions, response to treatment, treatment "
        "modifications and new recommendations."
    ),
    SectionType.CURRENT_MEDICATIONS: (
        "Update the active medication list with dosages, recent changes, "
        "adherence and tolerability."
    ),
    SectionType.MEDICATIONS_PLAN: (
        "Update new prescriptions or dose changes, planned adjustments, "
        "monitoring requirements and patient education."
    ),
    SectionType.RISKS: (
        "Update risk and protective factors, safety concerns and the overall "
        "risk level."
    ),
    SectionType.SAFETY_PLAN: (
        "Update safety plan status, modifications, emergency contacts and "
        "coping strategies reviewed."
    ),
    SectionType.QUESTIONNAIRES_SURVEYS: (
        "Update standardized assessment scores (PHQ-9, GAD-7) and compare "
        "with previous scores."
    ),
    SectionType.MEDICAL: "Update new medical conditions, appointments or findings.",
    SectionType.PSYCHOSOCIAL: (
        "Update therapy progress, social supports, stressors and improvements."
    ),
    SectionType.FOLLOW_UP: (
        "Update next appointment timing, interim contact plans and patient "
        "instructions."
    ),
    SectionType.BASIC_DEMO_INFO: "Update any changes to demographic information.",
    SectionType.DIAGNOSIS: "Update diagnostic information only if it changed.",
    SectionType.IDENTIFYING_INFO: "Update identifying information only if it changed.",
    SectionType.BH_PRIOR_MEDS_TRIED: "Add newly reported prior medication trials.",
    SectionType.PHYSICAL_EXAM: "Update with current physical examination findings.",
    SectionType.PROGNOSIS: "Update the prognostic assessment if it changed.",
    SectionType.SUBJECTIVE: "Update with current subjective findings and patient reports.",
    SectionType.OBJECTIVE: "Update with current objective findings and observations.",
    SectionType.ASSESSMENT: "Update clinical assessment and diagnostic impressions.",
    SectionType.PLAN: "Update treatment plan and recommendations.",
    SectionType.HEADER: (
        "Identifying lines at the top of the note; change only what the "
        "transcript updates."
    ),
    SectionType.UNSTRUCTURED: (
        "The whole note as free text; rewrite it with the new encounter information."
    ),
}

DEFAULT_UPDATE_INSTRUCTION = (
    "Update the section with relevant new information from the encounter."
)
