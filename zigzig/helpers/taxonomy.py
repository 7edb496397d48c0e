# Static keyword tables used by the portfolio parser. Entries are lowercase
# and compared against normalized skill names.

LANGUAGES = {
    "javascript", "js", "typescript", "ts", "python", "java", "c", "c++", "cpp", "c#", "csharp",
    "go", "golang", "rust", "swift", "kotlin", "php", "ruby", "scala", "r", "matlab", "sql",
    "perl", "haskell", "elixir", "erlang", "clojure", "dart", "lua", "julia", "objective-c",
    "bash", "shell", "solidity", "html", "css", "f#", "ocaml", "zig", "fortran", "cobol",
}

FRAMEWORKS = {
    "react", "react.js", "reactjs", "react native", "vue", "vue.js", "vuejs", "angular", "svelte",
    "next.js", "nextjs", "nuxt", "nuxt.js", "express", "express.js", "node.js", "nodejs", "fastapi",
    "django", "flask", "spring", "spring boot", "laravel", "rails", "ruby on rails", "asp.net",
    ".net", "gin", "fiber", "nestjs", "remix", "tailwind", "tailwindcss", "bootstrap", "jquery",
    "flutter", "pytorch", "tensorflow", "keras", "scikit-learn", "pandas", "numpy", "spark",
    "pyspark", "hadoop", "langchain", "graphql", "redux", "electron", "unity", "qt",
}

DATABASES = {
    "postgresql", "postgres", "mysql", "mongodb", "redis", "elasticsearch", "cassandra", "dynamodb",
    "firebase", "supabase", "prisma", "typeorm", "sequelize", "sqlite", "oracle", "sql server",
    "mariadb", "neo4j", "snowflake", "bigquery", "clickhouse", "couchdb", "pinecone",
}

CLOUD = {
    "aws", "azure", "gcp", "google cloud", "docker", "kubernetes", "k8s", "terraform", "ansible",
    "jenkins", "github actions", "gitlab ci", "circleci", "vercel", "netlify", "heroku",
    "cloudflare", "lambda", "ec2", "s3", "helm", "openshift", "pulumi", "serverless",
}

TOOLS = {
    "git", "github", "gitlab", "webpack", "vite", "babel", "eslint", "prettier", "jest", "cypress",
    "playwright", "selenium", "pytest", "figma", "sketch", "photoshop", "jira", "confluence",
    "postman", "linux", "nginx", "kafka", "rabbitmq", "airflow", "dbt", "tableau", "power bi",
    "excel", "grafana", "prometheus", "datadog", "vim", "storybook",
}

SOFT_SKILLS = {
    "leadership", "communication", "teamwork", "problem solving", "project management", "agile",
    "scrum", "mentoring", "public speaking", "writing", "research", "collaboration",
    "time management", "critical thinking", "stakeholder management", "product management",
}

# Skills nearly every profile lists; anything outside this set counts toward rarity.
COMMON_SKILLS = {
    "javascript", "js", "html", "css", "sql", "git", "github", "python", "java", "excel",
    "react", "node.js", "nodejs", "mysql", "jquery", "bootstrap", "communication", "teamwork",
    "leadership", "problem solving", "linux", "agile", "scrum", "php", "c", "c++", "microsoft office",
    "jira", "figma", "rest", "rest api", "json",
}

# Skills with strong current hiring demand.
IN_DEMAND_SKILLS = {
    "react", "typescript", "python", "aws", "kubernetes", "node.js", "nodejs", "go", "golang",
    "rust", "docker", "terraform", "next.js", "nextjs", "pytorch", "tensorflow", "machine learning",
    "llm", "langchain", "gcp", "azure", "postgresql", "graphql", "kafka", "spark", "snowflake",
    "fastapi", "data engineering", "generative ai",
}

# Keywords spotted inside role descriptions and project blurbs.
TECH_KEYWORDS = (
    "react", "vue", "angular", "node.js", "python", "java", "typescript", "javascript", "go",
    "rust", "aws", "gcp", "azure", "docker", "kubernetes", "postgresql", "mongodb", "redis",
    "graphql", "rest", "django", "fastapi", "flask", "spark", "kafka", "terraform",
)

INDUSTRY_KEYWORDS = {
    "fintech": ("bank", "finance", "fintech", "payment", "trading", "investment", "insurance", "lending"),
    "healthcare": ("health", "medical", "hospital", "pharma", "biotech", "clinical"),
    "ecommerce": ("ecommerce", "e-commerce", "retail", "shopping", "marketplace"),
    "saas": ("saas", "b2b software", "platform"),
    "gaming": ("game", "gaming", "esports"),
    "education": ("education", "edtech", "learning", "university", "school"),
    "media": ("media", "news", "publishing", "streaming", "entertainment"),
    "logistics": ("logistics", "supply chain", "shipping", "delivery"),
    "ai": ("machine learning", "artificial intelligence", " ai ", "deep learning", "llm"),
    "security": ("security", "cybersecurity", "infosec"),
    "blockchain": ("blockchain", "crypto", "web3", "defi"),
}

SENIOR_MARKERS = ("senior", "sr", "staff", "principal")
LEAD_MARKERS = ("lead", "head of", "director", "vp", "vice president", "chief", "cto")

ROLE_TITLE_KEYWORDS = (
    (("frontend", "front-end", "front end", "ui"), "Frontend Developer"),
    (("backend", "back-end", "back end", "api"), "Backend Developer"),
    (("fullstack", "full-stack", "full stack"), "Full Stack Developer"),
    (("devops", "sre", "site reliability", "platform"), "DevOps Engineer"),
    (("data", "analytics"), "Data Engineer"),
    (("machine learning", "ml", "ai"), "Machine Learning Engineer"),
    (("mobile", "ios", "android"), "Mobile Developer"),
    (("designer", "ux"), "Product Designer"),
    (("product manager",), "Product Manager"),
)

DEGREE_RANKS = (
    (("phd", "ph.d", "doctor", "doctorate"), 4),
    (("master", "msc", "m.sc", "ms ", "m.s.", "mba", "m.eng", "meng"), 3),
    (("bachelor", "bsc", "b.sc", "bs ", "b.s.", "ba ", "b.a.", "b.eng", "beng", "btech", "b.tech"), 2),
    (("associate", "diploma"), 1),
)

CERTIFICATION_MARKERS = ("certification", "certified", "certificate")

PROJECT_DOMAINS = (
    (("ecommerce", "e-commerce", "shopping", "storefront"), "ecommerce"),
    (("social", "chat", "messaging"), "social"),
    (("finance", "payment", "banking", "trading"), "fintech"),
    (("health", "medical", "fitness"), "healthcare"),
    (("education", "learning", "course"), "education"),
    (("game", "gaming"), "gaming"),
    (("climate", "energy", "sustainab"), "climate"),
)

# Pairs that are worth more together than apart; order is display order.
VALUABLE_SKILL_PAIRS = (
    ("typescript", "react"),
    ("python", "aws"),
    ("python", "pytorch"),
    ("python", "tensorflow"),
    ("go", "kubernetes"),
    ("rust", "webassembly"),
    ("react", "node.js"),
    ("docker", "kubernetes"),
    ("terraform", "aws"),
    ("spark", "kafka"),
    ("solidity", "react"),
)

COMPANY_TYPE_MARKERS = (
    (("startup", "start-up", "seed", "series a", "founding"), "startup"),
    (("enterprise", "fortune", "multinational", "global leader"), "enterprise"),
)
