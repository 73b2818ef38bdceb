"""
Clinical reference data used by the ILD Log application.

The lists here drive both validation in the data model and the choices shown
in the Streamlit forms, so they are kept in one place.
"""
# ildlog/constants.py

DIAGNOSIS_CATEGORIES = {
    "ILD": "Interstitial Lung Disease (ILD)",
    "OAD": "Obstructive Airway Disease (OAD)",
    "Bronchiectasis": "Bronchiectasis",
}

ILD_SUBTYPES = [
    "Idiopathic pulmonary fibrosis",
    "Hypersensitivity pneumonitis",
    "Idiopathic NSIP",
    "CTD-ILD",
    "IPAF",
    "Sarcoidosis",
    "Occupational ILD",
    "COP",
    "RB-ILD",
    "DIP",
    "AIP",
    "Idiopathic pleuro-parenchymal fibroelastosis",
    "LIP",
    "LCH",
    "LAM",
    "Eosinophilic pneumonia",
]

OAD_SUBTYPES = [
    "COPD",
    "Asthma",
    "Asthma-COPD Overlap (ACO)",
    "Bronchiolitis Obliterans",
    "Other OAD",
]

BRONCHIECTASIS_SUBTYPES = [
    "Post-infectious",
    "Cystic Fibrosis related",
    "ABPA related",
    "Primary Ciliary Dyskinesia",
    "Idiopathic",
    "Other",
]

SUBTYPES_BY_CATEGORY = {
    "ILD": ILD_SUBTYPES,
    "OAD": OAD_SUBTYPES,
    "Bronchiectasis": BRONCHIECTASIS_SUBTYPES,
}

CTD_ILD = "CTD-ILD"
SARCOIDOSIS = "Sarcoidosis"

CTD_TYPES = [
    "Scleroderma",
    "Rheumatoid arthiritis",
    "SLE",
    "Dermatomyositis",
    "Polymyosistis",
    "MCTD",
    "Others",
]

SARCOIDOSIS_STAGES = ["Stage 1", "Stage 2", "Stage 3", "Stage 4"]

SEX_OPTIONS = ["Male", "Female", "Other"]

CO_MORBIDITIES = [
    "Diabetes Mellitus",
    "Hypertension",
    "GERD",
    "Obstructive Sleep Apnea",
    "Coronary Artery Disease",
    "Pulmonary Hypertension",
    "Hypothyroidism",
    "Osteoporosis",
    "Depression",
    "Anxiety",
    "Chronic Kidney Disease (CKD)",
    "Chronic Liver Disease (CLD)",
    "Past history of Pulmonary TB",
    "Hepatitis B",
    "Hepatitis C",
    "HIV",
    "Others",
]

MEDICATIONS = [
    "Wysolone",
    "MMF",
    "Azathoprine",
    "Methotrexate",
    "Rituximab",
    "Nintedanib",
    "Perfinedone",
    "Bronchodilator",
    "IVIG",
    "Other",
]

FREQUENCIES = [
    "OD",
    "BD",
    "TDS",
    "Once a week",
    "Once a month",
    "Induction first dose",
    "Induction 2nd dose",
    "Maintenance dose",
]

# Frequencies that carry a dose number and dosage date.
DOSED_FREQUENCIES = {"Induction first dose", "Induction 2nd dose", "Maintenance dose"}
MAX_DOSE_NUMBER = 20

MMRC_GRADES = [
    ("0", "Grade 0: I only get breathless with strenuous exercise."),
    ("1", "Grade 1: I get short of breath when hurrying on the level or walking up a slight hill."),
    ("2", "Grade 2: I walk slower than people of the same age on the level because of breathlessness, "
          "or I have to stop for breath when walking on my own pace on the level."),
    ("3", "Grade 3: I stop for breath after walking about 100 meters or after a few minutes on the level."),
    ("4", "Grade 4: I am too breathless to leave the house or I am breathless when dressing or undressing."),
]
MMRC_VALUES = [value for value, _ in MMRC_GRADES]

SIDE_EFFECTS = [
    "Nausea (जी मिचलाना)",
    "Vomiting (उल्टी)",
    "Diarrhea (दस्त)",
    "Fever (बुखार)",
    "Headache (सिरदर्द)",
    "Abdominal Pain (पेट दर्द)",
    "Rashes (चकत्ते)",
]

FEVER_KEYWORD = "fever"
FEVER_KEYWORD_HI = "बुखार"

# Symptom keys in display order, with their Hindi names.
VAS_SYMPTOMS = {
    "cough": "खांसी",
    "expectoration": "बलगम",
    "breathlessness": "सांस फूलना",
    "chest_pain": "छाती में दर्द",
    "hemoptysis": "खून की उल्टी / बलगम में खून",
    "fever": "बुखार",
    "ctd_symptoms": "सीटीडी लक्षण",
}
VAS_MIN, VAS_MAX = 0, 10

KBILD_MIN_RESPONSE, KBILD_MAX_RESPONSE = 1, 7

KBILD_OPTIONS = {
    "frequency_1": ["Every time", "Most times", "Several times", "Some times",
                    "Occasionally", "Rarely", "Never"],
    "frequency_2": ["All of the time", "Most of the time", "A good bit of the time",
                    "Some of the time", "A little of the time", "Hardly any of the time",
                    "None of the time"],
    "control": ["None of the time", "Hardly any of the time", "A little of the time",
                "Some of the time", "A good bit of the time", "Most of the time",
                "All of the time"],
    "amount": ["A significant amount", "A large amount", "A considerable amount",
               "A reasonable amount", "A small amount", "Hardly at all", "Not at all"],
}

# (question id, English text, answer set)
KBILD_QUESTIONS = [
    (1, "In the last 2 weeks, I have been breathless climbing stairs or walking up an incline or hill.", "frequency_1"),
    (2, "In the last 2 weeks, because of my lung condition, my chest has felt tight.", "frequency_2"),
    (3, "In the last 2 weeks have you worried about the seriousness of your lung complaint?", "frequency_2"),
    (4, "In the last 2 weeks have you avoided doing things that make you breathless?", "frequency_2"),
    (5, "In the last 2 weeks have you felt in control of your lung condition?", "control"),
    (6, "In the last 2 weeks, has your lung complaint made you feel fed up or down in the dumps?", "frequency_2"),
    (7, "In the last 2 weeks, I have felt the urge to breathe, also known as 'air hunger'.", "frequency_2"),
    (8, "In the last 2 weeks, my lung condition has made me feel anxious.", "frequency_2"),
    (9, "In the last 2 weeks, how often have you experienced 'wheeze' or whistling sounds from your chest?", "frequency_2"),
    (10, "In the last 2 weeks, how much of the time have you felt your lung disease is getting worse?", "frequency_2"),
    (11, "In the last 2 weeks has your lung condition interfered with your job or other daily tasks?", "frequency_2"),
    (12, "In the last 2 weeks have you expected your lung complaint to get worse?", "frequency_2"),
    (13, "In the last 2 weeks, how much has your lung condition limited you carrying things, for example, groceries?", "frequency_2"),
    (14, "In the last 2 weeks, has your lung condition made you think more about the end of your life?", "frequency_2"),
    (15, "Are you financially worse off because of your lung condition?", "amount"),
]
KBILD_QUESTION_IDS = [question_id for question_id, _, _ in KBILD_QUESTIONS]

ALERT_SPO2_DROP = "SpO2 drop > 5%"
ALERT_FEVER = "Fever detected"
SPO2_DROP_THRESHOLD = 5

PERIODS = ("daily", "weekly", "monthly")
