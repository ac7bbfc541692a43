"""
Test suite for the documentation build configuration.
"""

import runpy
from pathlib import Path

import eicspin

DOCS = Path(__file__).resolve().parent.parent / "docs"


class TestDocsConfig:

    def test_release_follows_package(self):
        conf = runpy.run_path(str(DOCS / "conf.py"))
        assert conf['release'] == eicspin.__version__
        assert eicspin.__version__.startswith(conf['version'])

    def test_api_source_and_root_document(self):
        conf = runpy.run_path(str(DOCS / "conf.py"))
        api_source = Path(conf['autodoc2_packages'][0]['path'])
        assert api_source.name == 'eicspin'
        assert (api_source / '__init__.py').is_file()
        assert (DOCS / f"{conf['root_doc']}.md").is_file()
