import unittest
from pathlib import Path

PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"

# Import name -> distribution name for every third-party module the app imports.
RUNTIME_DISTRIBUTIONS = {
    "fastapi": "fastapi",
    "starlette": "starlette",
    "uvicorn": "uvicorn",
    "pydantic": "pydantic",
    "psycopg2": "psycopg2-binary",
    "dotenv": "python-dotenv",
    "requests": "requests",
}


class DependencyDeclarationTests(unittest.TestCase):
    def test_runtime_imports_are_declared(self):
        text = PYPROJECT.read_text()
        declared = text.split("dependencies = [", 1)[1].split("]", 1)[0]
        for module, distribution in RUNTIME_DISTRIBUTIONS.items():
            with self.subTest(module=module):
                self.assertIn(f'"{distribution}', declared)


if __name__ == "__main__":
    unittest.main()
