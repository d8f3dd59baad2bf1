"""
Vertical-specific rule tables.

Every keyword list, domain list and lookup table the pipeline matches against
lives here as plain data. The matching code in the classifier, normalizers,
link validator and scorer only iterates these structures, so retuning the
pipeline for a new feed or a new false positive means editing this module.
"""

# ---------------------------------------------------------------------------
# Relevance classifier
# ---------------------------------------------------------------------------

# Phrases that on their own identify a psychiatric NP posting.
POSITIVE_PHRASES = (
    'pmhnp',
    'psychiatric nurse practitioner',
    'psych nurse practitioner',
    'mental health nurse practitioner',
    'psychiatric mental health nurse practitioner',
    'psychiatric-mental health nurse practitioner',
    'psychiatric aprn',
    'psychiatric arnp',
    'psychiatric prescriber',
    'behavioral health nurse practitioner',
    'behavioral health np',
    'psych np',
    'mental health np',
    'psychiatric np',
    'pmhnp-bc',
    'fpmhnp',
    'pmnhp',  # common misspelling
    'app - psychiatry',
    'advanced practice provider - psychiatry',
    'nurse practitioner - psychiatry',
    'nurse practitioner - mental health',
    'nurse practitioner - behavioral health',
    'np - psychiatry',
    'np - mental health',
    'nurse practitioner psychiatry',
    'nurse practitioner mental health',
    'nurse practitioner behavioral health',
    'np psychiatry',
    'np mental health',
    'np behavioral health',
)

# Fallback rule: a domain term anywhere plus a role term in the title.
DOMAIN_CONTEXT_TERMS = ('mental health', 'psychiatric', 'behavioral health', 'psychiatry')
TITLE_ROLE_TERMS = ('nurse practitioner', ' np', 'aprn', 'arnp')

# Titles too generic to trust without psych wording in the title itself.
GENERIC_NP_TITLES = (
    'nurse practitioner',
    'advanced practice provider',
    'advanced practice nurse',
    'advanced practice professional',
    'app',
    'apn',
    'inpatient app',
    'outpatient app',
    'prn nurse practitioner',
    'part time nurse practitioner',
    'part-time nurse practitioner',
    'weekend nurse practitioner',
    'clinical nurse practitioner',
    'pnp',
    'lpnp',
)

# Qualifiers that may trail a generic title ("Nurse Practitioner - Memphis, TN").
GENERIC_TITLE_SUFFIXES = (
    ' -', ' –', ' (', ',', ' $', ' sign', ' travel', ' prn', ' weekend', ' part', ' full',
)

TITLE_PSYCH_TERMS = ('psych', 'mental health', 'behavioral health', 'pmhnp')

# Matched against the title only.
WRONG_ROLE_PHRASES = (
    # other providers
    'physician',
    'medical doctor',
    ' m.d.',
    ' d.o.',
    'social worker',
    'therapist',
    'counselor',
    'psychiatrist',
    'practical nurse',
    ' lpn',
    ' lvn',
    ' cna',
    'medical assistant',
    'dietitian',
    'nutritionist',
    'chiropractor',
    'hospitalist',
    'physician assistant',
    'pa-c',
    ' pa ',
    'clinical nurse specialist',
    'nocturnist',
    'neurologist',
    'psychologist',
    'lcsw',
    'lmft',
    'licsw',
    'lpc',
    'lmsw',
    'lcpc',
    'lgpc',
    'phd',
    'psy d',
    'certified nurse midwife',
    'nurse midwife',
    'midwife',
    'registered nurse',
    ' rn ',
    ' rn-',
    '-rn ',
    'outpatient rn',
    'inpatient rn',
    # other NP specialties
    'pediatric nurse practitioner',
    'pediatric np',
    'pediatrics nurse practitioner',
    "women's health nurse practitioner",
    "women's health np",
    'substance abuse nurse practitioner',
    'addiction medicine nurse practitioner',
    'travel nurse practitioner',
    'advanced practice clinician',
    'medical np',
    'medical pa',
    # other clinical settings and specialties
    'primary care',
    'home based',
    'community care clinic',
    'emergency medicine',
    'acute care',
    'cardiology',
    'dermatology',
    'surgical',
    'orthopedic',
    'urology',
    'occupational health',
    'anesthesia',
    'pain management',
    ' icu ',
    'pediatric icu',
    'skilled nursing',
    'walk-in clinic',
    'urgent care',
    'oncology',
    'endocrinology',
    'gastroenterology',
    'nephrology',
    'pulmonology',
    'rheumatology',
    'hematology',
    'neurology',
    'bariatric',
    'neonatal',
    'labor and delivery',
    ' pace ',
    'wound care',
    'palliative',
    'nursing home',
    'long term care',
    'long-term care',
    'home health',
    'infusion',
    'dialysis',
    'transplant',
    # non-clinical roles
    'verify insurance',
    'receptionist',
    'scheduler',
    'driver',
    'lecturer',
    'instructor',
    'technician',
    'scheduling coordinator',
    'intake coordinator',
    'referral coordinator',
    'case manager',
    'program director',
    'office manager',
    'facility manager',
    'practice manager',
    'medical director',
    'director of nursing',
    'director of operations',
    'director of finance',
    'medical front office',
    'talent community',
    'interim cfo',
    'cfo',
    'building automation',
    'project sales',
    'recruiter',
    'bookings specialist',
    'medical science liaison',
    'prospect application',
    'centralized nurse practioner',
)

# Wrong-role phrases that legitimately appear in dual or collaborative titles
# ("Psychiatrist / PMHNP", "PMHNP - Long Term Care"). They are excused when the
# combined text carries one of STRONG_POSITIVE_PHRASES.
AMBIGUOUS_ROLE_PHRASES = frozenset((
    'psychiatrist',
    'collaborating psychiatrist',
    'locum tenens psychiatrist',
    'physician assistant',
    'pa-c',
    'travel nurse practitioner',
    'home health',
    'nursing home',
    'long term care',
    'long-term care',
    'skilled nursing',
))

STRONG_POSITIVE_PHRASES = POSITIVE_PHRASES

# ---------------------------------------------------------------------------
# Salary normalizer
# ---------------------------------------------------------------------------

PERIOD_MULTIPLIERS = {
    'annual': 1,
    'monthly': 12,
    'weekly': 52,
    'daily': 260,      # working days
    'hourly': 2080,    # 40h x 52w
}

# Checked in order against the explicit period field (substring match).
PERIOD_ALIASES = (
    ('annual', 'annual'),
    ('yearly', 'annual'),
    ('year', 'annual'),
    ('monthly', 'monthly'),
    ('month', 'monthly'),
    ('weekly', 'weekly'),
    ('week', 'weekly'),
    ('daily', 'daily'),
    ('day', 'daily'),
    ('hourly', 'hourly'),
    ('hour', 'hourly'),
)

# Checked in order against free salary text.
PERIOD_TEXT_KEYWORDS = (
    ('hourly', ('/hour', '/hr', 'per hour', 'hourly', ' an hour')),
    ('weekly', ('/week', '/wk', 'per week', 'weekly')),
    ('monthly', ('/month', '/mo', 'per month', 'monthly')),
    ('annual', ('/year', '/yr', 'per year', 'annually', 'annual', 'a year')),
    ('daily', ('/day', 'per day', 'daily')),
)

# Magnitude inference for values without a stated period: (upper bound, period).
PERIOD_MAGNITUDE_THRESHOLDS = (
    (500, 'hourly'),
    (5000, 'weekly'),
    (20000, 'monthly'),
)

HOURLY_RATE_BAND = (50, 350)
ANNUAL_REFERENCE_MIN = 80000
ANNUAL_BAND = (ANNUAL_REFERENCE_MIN * 0.8, 300000)          # 64k - 300k
ANNUAL_BAND_LOOSE = (ANNUAL_REFERENCE_MIN * 0.6, 400000)    # 48k - 400k

ESTIMATED_MARKERS = ('estimated', 'predicted')

# ---------------------------------------------------------------------------
# Location parser
# ---------------------------------------------------------------------------

STATE_NAME_TO_CODE = {
    'Alabama': 'AL', 'Alaska': 'AK', 'Arizona': 'AZ', 'Arkansas': 'AR',
    'California': 'CA', 'Colorado': 'CO', 'Connecticut': 'CT', 'Delaware': 'DE',
    'Florida': 'FL', 'Georgia': 'GA', 'Hawaii': 'HI', 'Idaho': 'ID',
    'Illinois': 'IL', 'Indiana': 'IN', 'Iowa': 'IA', 'Kansas': 'KS',
    'Kentucky': 'KY', 'Louisiana': 'LA', 'Maine': 'ME', 'Maryland': 'MD',
    'Massachusetts': 'MA', 'Michigan': 'MI', 'Minnesota': 'MN', 'Mississippi': 'MS',
    'Missouri': 'MO', 'Montana': 'MT', 'Nebraska': 'NE', 'Nevada': 'NV',
    'New Hampshire': 'NH', 'New Jersey': 'NJ', 'New Mexico': 'NM', 'New York': 'NY',
    'North Carolina': 'NC', 'North Dakota': 'ND', 'Ohio': 'OH', 'Oklahoma': 'OK',
    'Oregon': 'OR', 'Pennsylvania': 'PA', 'Rhode Island': 'RI', 'South Carolina': 'SC',
    'South Dakota': 'SD', 'Tennessee': 'TN', 'Texas': 'TX', 'Utah': 'UT',
    'Vermont': 'VT', 'Virginia': 'VA', 'Washington': 'WA', 'West Virginia': 'WV',
    'Wisconsin': 'WI', 'Wyoming': 'WY', 'District of Columbia': 'DC',
}

STATE_CODE_TO_NAME = {code: name for name, code in STATE_NAME_TO_CODE.items()}

REMOTE_KEYWORDS = (
    'remote', 'telehealth', 'telepsychiatry', 'virtual', 'work from home',
    'wfh', 'anywhere', 'nationwide', 'united states', 'usa remote',
)

HYBRID_KEYWORDS = ('hybrid', 'flexible', 'partial remote')

DEFAULT_COUNTRY = 'US'

# ---------------------------------------------------------------------------
# Job type / work mode detection (first match wins)
# ---------------------------------------------------------------------------

JOB_TYPE_PATTERNS = (
    ('Per Diem', (r'per[\s-]?diem', r'\bprn\b')),
    ('Contract', (r'\bcontract\b', r'\bcontractor\b', r'locum', r'\b1099\b', r'\btemporary\b')),
    ('Part-Time', (r'part[\s-]?time',)),
    ('Full-Time', (r'full[\s-]?time', r'\bpermanent\b')),
)

WORK_MODE_PATTERNS = (
    ('Hybrid', (r'\bhybrid\b',)),
    ('Remote', (r'\bremote\b', r'telehealth', r'telepsychiatry', r'work from home')),
    ('In-Person', (r'on[\s-]?site', r'in[\s-]person')),
)

# Source-provided employment types ("full_time", "FULLTIME", "contractor").
EMPLOYMENT_TYPE_ALIASES = {
    'full_time': 'Full-Time',
    'fulltime': 'Full-Time',
    'full-time': 'Full-Time',
    'full time': 'Full-Time',
    'permanent': 'Full-Time',
    'part_time': 'Part-Time',
    'parttime': 'Part-Time',
    'part-time': 'Part-Time',
    'part time': 'Part-Time',
    'contract': 'Contract',
    'contractor': 'Contract',
    'temporary': 'Contract',
    'per diem': 'Per Diem',
    'per_diem': 'Per Diem',
    'prn': 'Per Diem',
}

# ---------------------------------------------------------------------------
# Link validation and quality scoring
# ---------------------------------------------------------------------------

# Direct ATS hosts whose links are trusted without a network round trip.
TRUSTED_ATS_HOST_PATTERNS = (
    'boards.greenhouse.io',
    'job-boards.greenhouse.io',
    'jobs.lever.co',
    'jobs.ashbyhq.com',
    'www.usajobs.gov',
    'myworkdayjobs.com',
    '.breezy.hr',
    '.workable.com',
    '.bamboohr.com',
    '.jazz.co',
    '.recruitee.com',
    '.icims.com',
)

# Aggregator redirect hosts; their links must resolve elsewhere.
TRACKING_DOMAINS = (
    'adzuna.com',
    'jooble.org',
    'rapidapi.com',
)

DEAD_PAGE_PATTERNS = (
    'position has been filled',
    'no longer accepting',
    'this job is no longer available',
    'this position has been closed',
    'job has expired',
    'page not found',
    'sorry, that page',
    'this posting is no longer active',
    "we couldn't find",
    'this job was removed',
    'no results found',
    'application closed',
    'this requisition is no longer',
)

DEAD_STATUS_CODES = frozenset((403, 404, 410))
LIVENESS_DEAD_STATUS_CODES = frozenset((404, 410))
HEAD_REJECTED_STATUS_CODES = frozenset((403, 405))

# Quality tiers (substring match on the apply link host).
DIRECT_ATS_DOMAINS = (
    'greenhouse.io',
    'lever.co',
    'ashbyhq.com',
    'myworkdayjobs.com',
    'myworkdaysite.com',
    'careers.icims.com',
    'icims.com',
    'bamboohr.com',
    'breezy.hr',
    'workable.com',
    'recruitee.com',
    'jazz.co',
    'jazzhr.com',
    'jobvite.com',
    'smartrecruiters.com',
    'paylocity.com',
    'paycomonline.net',
    'ultipro.com',
    'clearcompany.com',
    'applytojob.com',
    'pinpointhq.com',
    'usajobs.gov',
    'governmentjobs.com',
    'healthcaresource.com',
    'dayforcehcm.com',
)

JOB_BOARD_DOMAINS = (
    'indeed.com',
    'ziprecruiter.com',
    'linkedin.com',
    'glassdoor.com',
    'monster.com',
    'simplyhired.com',
    'snagajob.com',
    'talent.com',
    'lensa.com',
    'theladders.com',
    'bebee.com',
    'learn4good.com',
    'doccafe.com',
    'practicematch.com',
    'docjobs.com',
    'doximity.com',
    'jobrapido.com',
    'whatjobs.com',
    'teal.com',
    'tealhq.com',
    'career.io',
    'gothamenterprises.com',
    'jooble.org',
    'adzuna.com',
    'localjobs.com',
    'enpnetwork.com',
    'jobtarget.com',
    'getwork.com',
    'jobilize.com',
    'rapidapi.com',
)

# ---------------------------------------------------------------------------
# Deduplication
# ---------------------------------------------------------------------------

TRACKING_QUERY_PARAMS = frozenset((
    'utm_source', 'utm_medium', 'utm_campaign', 'utm_term', 'utm_content',
    'ref', 'source', 'src', 'gh_src', 'lever-source', 'trk', 'refid',
))

TITLE_STOPWORDS = frozenset(('the', 'a', 'an', 'at', 'in', 'for', 'to', 'and', 'or'))

# ---------------------------------------------------------------------------
# Employer names
# ---------------------------------------------------------------------------

# Trailing words dropped when building an employer match key, compared after
# punctuation is removed.
EMPLOYER_KEY_SUFFIXES = (
    'incorporated', 'inc', 'llc', 'limited', 'ltd', 'corporation', 'corp',
    'company', 'co', 'health care', 'healthcare', 'health', 'medical group',
    'medical', 'group', 'services', 'solutions', 'partners', 'associates',
    'pllc', 'pc', 'pa',
)

# Trailing legal-entity forms dropped from the stored display name.
EMPLOYER_LEGAL_SUFFIXES = (
    'incorporated', 'inc', 'llc', 'l.l.c', 'ltd', 'limited', 'corp', 'corporation',
    'pllc', 'p.c', 'pc', 'p.a', 'pa',
)

# Canonical employer name -> spellings seen across feeds.
KNOWN_EMPLOYERS = {
    'Talkiatry': ('talkiatry', 'talkiatry inc'),
    'Talkspace': ('talkspace', 'talkspace inc', 'talkspace llc'),
    'SonderMind': ('sondermind', 'sonder mind', 'sondermind inc'),
    'LifeStance Health': ('lifestance', 'lifestance health', 'life stance'),
    'Cerebral': ('cerebral', 'cerebral inc'),
    'Headway': ('headway', 'headway health'),
    'Spring Health': ('spring health', 'springhealth'),
    'Lyra Health': ('lyra health', 'lyrahealth', 'lyra'),
    'Modern Health': ('modern health', 'modernhealth'),
    'Teladoc Health': ('teladoc', 'teladoc health', 'teladochealth'),
    'Brightside Health': ('brightside', 'brightside health'),
    'Department of Veterans Affairs': ('veterans affairs', 'va hospital', 'va health', 'va medical'),
}

# ---------------------------------------------------------------------------
# Search matrix for keyword-driven connectors
# ---------------------------------------------------------------------------

SEARCH_QUERIES = (
    'PMHNP',
    'psychiatric nurse practitioner',
    'psychiatric mental health nurse practitioner',
    'behavioral health nurse practitioner',
    'psychiatric APRN',
    'psych NP',
    'mental health NP',
    'PMHNP-BC',
    'psychiatric prescriber',
    'telepsychiatry nurse practitioner',
    'Nurse Practitioner Psychiatry',
    'Psychiatric ARNP',
    'Psychiatry Nurse Practitioner',
    'Psychiatric Mental Health NP-BC',
    'New Grad PMHNP',
    'Remote PMHNP',
    'Telehealth Psychiatric Nurse Practitioner',
    'Locum Tenens PMHNP',
    'Travel Psychiatric Nurse Practitioner',
    'Correctional Psychiatric Nurse Practitioner',
    'Inpatient Psychiatric Nurse Practitioner',
    'Outpatient PMHNP',
)

SEARCH_LOCATIONS = tuple(sorted(STATE_NAME_TO_CODE)) + ('Remote',)
