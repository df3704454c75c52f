import logging

import pytest

from licmatch.core.cache import MatcherCache
from licmatch.core.config import LicmatchConfig, LimitsConfig, ScanConfig
from licmatch.core.corpus import InMemoryCorpus, StandardException, StandardLicense
from licmatch.core.errors import UnknownLicenseError
from licmatch.core.matcher import StandardLicenseMatcher, is_text_matching_template

MIT_BODY = (
    "Permission is hereby granted, free of charge, to any person obtaining a copy of this software "
    'and associated documentation files (the "Software"), to deal in the Software without restriction, '
    "including without limitation the rights to use, copy, modify, merge, publish, distribute, "
    "sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is "
    "furnished to do so, subject to the following conditions:\n"
    "\n"
    "The above copyright notice and this permission notice shall be included in all copies or "
    "substantial portions of the Software.\n"
    "\n"
    'THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING '
    "BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND "
    "NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, "
    "DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, "
    "OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE."
)

MIT_TEMPLATE = (
    "<<beginOptional>>MIT License<<endOptional>>\n"
    "\n"
    '<<var;name="copyright";original="Copyright (c) <year> <copyright holders>";match=".{0,5000}">>\n'
    "\n" + MIT_BODY
)

MIT_TEXT = "MIT License\n\nCopyright (c) <year> <copyright holders>\n\n" + MIT_BODY

MIT_SAMPLE = "MIT License\n\nCopyright (c) 2024 Jane Doe\n\n" + MIT_BODY

SIMPLE_TEXT = "Permission to use this software is granted to anyone, without conditions."

CLASSPATH_TEXT = (
    "As a special exception, the copyright holders of this library give you permission to link "
    "this library with independent modules to produce an executable."
)


def _corpus(*extra):
    licenses = [
        StandardLicense("MIT", MIT_TEXT, template=MIT_TEMPLATE, name="MIT License"),
        StandardLicense("Simple-1.0", SIMPLE_TEXT),
        StandardLicense("Simple-0.9", SIMPLE_TEXT, deprecated=True),
        *extra,
    ]
    exceptions = [StandardException("Classpath-exception-2.0", CLASSPATH_TEXT)]
    return InMemoryCorpus(licenses, exceptions, version="3.24")


def _matcher(**kwargs):
    return StandardLicenseMatcher(_corpus(), **kwargs)


def test_text_matches_templated_license():
    matcher = _matcher()

    result = matcher.is_text_standard_license("MIT", MIT_SAMPLE)

    assert result.found
    assert result.message is None


def test_text_matches_without_optional_title():
    matcher = _matcher()
    text = MIT_SAMPLE.replace("MIT License\n", "")

    assert matcher.is_text_standard_license("MIT", text).found


def test_comment_wrapped_license_matches():
    matcher = _matcher()
    wrapped = "\n".join("# " + line for line in MIT_SAMPLE.splitlines())
    block = "/*\n" + "\n".join(" * " + line for line in MIT_SAMPLE.splitlines()) + "\n */"

    assert matcher.is_text_standard_license("MIT", wrapped).found
    assert matcher.is_text_standard_license("MIT", block).found


def test_additional_text_is_reported():
    matcher = _matcher()
    text = MIT_SAMPLE + "\nExtra clause here."

    result = matcher.is_text_standard_license("MIT", text)

    assert result.difference_found
    assert result.message.startswith("Additional text found after the end of the expected license text")
    assert '"extra"' in result.message
    assert result.location == (MIT_SAMPLE.count("\n") + 2, 0)


def test_changed_word_is_reported():
    matcher = _matcher()
    text = MIT_SAMPLE.replace("MERCHANTABILITY", "USABILITY")

    result = matcher.is_text_standard_license("MIT", text)

    assert not result.found
    assert result.message.startswith("Normal text of license does not match")
    assert '"usability"' in result.message
    assert 'expected "merchantability"' in result.message


def test_truncated_text_is_reported_as_missing():
    matcher = _matcher()
    text = MIT_SAMPLE[: MIT_SAMPLE.index("IN NO EVENT")]

    result = matcher.is_text_standard_license("MIT", text)

    assert not result.found
    assert result.message == 'Missing text at end of text; expected "in"'


def test_license_within_larger_text():
    matcher = _matcher()
    text = "Some preamble text.\n\n" + MIT_SAMPLE + "\n\nTrailing notes."

    assert matcher.is_standard_license_within_text(text, "MIT")
    assert not matcher.is_text_standard_license("MIT", text).found
    assert matcher.matching_standard_license_ids_within_text(text) == {"MIT"}
    assert matcher.matching_standard_license_ids(text) == set()


def test_license_within_text_after_long_preamble():
    cfg = LicmatchConfig(limits=LimitsConfig(max_match_states=20_000))
    matcher = StandardLicenseMatcher(_corpus(), config=cfg)
    preamble = " ".join(f"filler{i}" for i in range(6000))

    assert matcher.is_standard_license_within_text(preamble + "\n\n" + MIT_SAMPLE, "MIT")


@pytest.mark.parametrize("text", ["", "   \n\t", "hello world"])
def test_license_not_within_unrelated_text(text):
    matcher = _matcher()

    assert not matcher.is_standard_license_within_text(text, "MIT")
    assert matcher.matching_standard_license_ids_within_text(text) == set()


@pytest.mark.parametrize(
    "license_id,text",
    [
        ("MIT", MIT_SAMPLE),
        ("MIT", MIT_TEXT),
        ("Simple-1.0", SIMPLE_TEXT),
        ("Simple-1.0", "// " + SIMPLE_TEXT.upper()),
    ],
)
def test_exact_and_within_apis_agree(license_id, text):
    matcher = _matcher()

    assert matcher.is_text_standard_license(license_id, text).found
    assert matcher.is_standard_license_within_text(text, license_id)
    exact = matcher.matching_standard_license_ids(text)
    within = matcher.matching_standard_license_ids_within_text(text)
    assert license_id in exact
    assert exact == within


def test_deprecated_ids_can_be_excluded_from_scans():
    assert _matcher().matching_standard_license_ids(SIMPLE_TEXT) == {"Simple-1.0", "Simple-0.9"}

    cfg = LicmatchConfig(scan=ScanConfig(include_deprecated=False, max_workers=2))
    matcher = StandardLicenseMatcher(_corpus(), config=cfg)

    assert matcher.matching_standard_license_ids(SIMPLE_TEXT) == {"Simple-1.0"}
    assert matcher.matching_standard_license_ids_within_text(SIMPLE_TEXT) == {"Simple-1.0"}


def test_within_scan_can_be_restricted_to_ids():
    matcher = _matcher()

    assert matcher.matching_standard_license_ids_within_text(MIT_SAMPLE, license_ids=["Simple-1.0"]) == set()
    assert matcher.matching_standard_license_ids_within_text(MIT_SAMPLE, license_ids=["MIT"]) == {"MIT"}


def test_unknown_license_id_raises():
    matcher = _matcher()

    with pytest.raises(UnknownLicenseError) as excinfo:
        matcher.is_text_standard_license("No-Such-License", "text")
    assert isinstance(excinfo.value, KeyError)
    assert "No-Such-License" in str(excinfo.value)


def test_malformed_template_falls_back_to_text(caplog):
    broken = StandardLicense(
        "Broken-1.0",
        "Broken license text here.",
        template="<<beginOptional>>Broken license text here.",
    )
    matcher = StandardLicenseMatcher(_corpus(broken))

    with caplog.at_level(logging.WARNING, logger="licmatch"):
        result = matcher.is_text_standard_license("Broken-1.0", "broken license text here.")

    assert result.found
    assert any("Broken-1.0" in rec.getMessage() for rec in caplog.records)
    assert "Broken-1.0" in matcher.matching_standard_license_ids("Broken license text here.")


def test_exception_apis():
    matcher = _matcher()
    text = "Licensed under GPL.\n" + CLASSPATH_TEXT + "\nEnd."

    assert matcher.is_text_standard_exception("Classpath-exception-2.0", CLASSPATH_TEXT).found
    assert not matcher.is_text_standard_exception("Classpath-exception-2.0", text).found
    assert matcher.is_standard_exception_within_text(text, "Classpath-exception-2.0")
    assert matcher.matching_standard_exception_ids_within_text(text) == {"Classpath-exception-2.0"}
    with pytest.raises(UnknownLicenseError):
        matcher.is_text_standard_exception("MIT", CLASSPATH_TEXT)


def test_cache_is_shared_between_matchers():
    cache = MatcherCache()
    first = StandardLicenseMatcher(_corpus(), cache=cache)
    second = StandardLicenseMatcher(_corpus(), cache=cache)

    first.is_text_standard_license("MIT", MIT_SAMPLE)
    assert ("license", "MIT", "3.24") in cache
    assert len(cache) == 1
    assert second.license_pattern("MIT") is first.license_pattern("MIT")
    assert len(cache) == 1


def test_is_text_matching_template_without_corpus():
    assert is_text_matching_template(MIT_TEMPLATE, MIT_SAMPLE).found
    assert not is_text_matching_template(MIT_TEMPLATE, SIMPLE_TEXT).found


def test_corpus_from_spdx_records():
    corpus = InMemoryCorpus.from_records(
        [
            {"licenseId": "MIT", "licenseText": MIT_TEXT, "standardLicenseTemplate": MIT_TEMPLATE},
            {"licenseId": "Old-1.0", "licenseText": SIMPLE_TEXT, "isDeprecatedLicenseId": True},
            {"licenseText": "no id"},
        ],
        [{"licenseExceptionId": "Classpath-exception-2.0", "licenseExceptionText": CLASSPATH_TEXT}],
        version="3.24",
    )

    assert corpus.license_ids() == ["MIT", "Old-1.0"]
    assert corpus.get_license("Old-1.0").deprecated
    assert corpus.get_license("MIT").template == MIT_TEMPLATE
    assert corpus.exception_ids() == ["Classpath-exception-2.0"]
    matcher = StandardLicenseMatcher(corpus)
    assert matcher.matching_standard_license_ids(MIT_SAMPLE) == {"MIT"}
