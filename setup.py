from pathlib import Path
from setuptools import setup, find_packages

__version__ = "0.3.0"


def _read_requirements(text: str) -> list[str]:
    return [
        line.split("#", 1)[0].strip()
        for line in text.splitlines()
        if line.split("#", 1)[0].strip()
    ]


try:
    install_requires = _read_requirements(
        Path(__file__).with_name("requirements.txt").read_text(encoding="utf8")
    )
except FileNotFoundError:
    install_requires = _read_requirements(
        """
cryptography>=35.0
certifi
pyOpenSSL>=20.0.0
rich
validators
idna
retry
pyyaml
art
pydantic>=2.0"""
    )


setup(
    name="tlschain",
    version=__version__,
    description="Retrieve the certificate chain a TLS server presents and validate it.",
    classifiers=[
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    zip_safe=False,
    include_package_data=True,
    install_requires=install_requires,
    extras_require={"test": ["pytest"]},
    entry_points={
        "console_scripts": ["tlschain=tlschain.cli.__main__:main"],
    },
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    long_description="""
# tlschain

Inspect the SSL/TLS certificate chain presented by a remote host and get a
structured assessment: chain composition, validity windows, hostname match and
basic trust and format checks.

## Basic Usage

`python3 -m pip install -U tlschain`

```py
import tlschain

report = tlschain.check_chain("ssllabs.com", 443)
print('Valid' if report.valid else 'Not Valid')
for issue in report.issues:
    print(issue.certificate_index, issue.severity, issue.message)
```

On the command-line:

```sh
tlschain check ssllabs.com github.com:443 --json
```

## Checks

- Leaf certificate is first in the chain
- Hostname matches a subjectAltName DNS entry or the subject common name, with single label wildcards
- Not yet valid, expired and expiring soon, for every certificate in the chain
- Each certificate issuer matches the subject of the next certificate
- Weak signature algorithms (md2, md4, md5, sha1)
- Weak key sizes
    """,
    long_description_content_type="text/markdown",
)
