from pathlib import Path
from setuptools import setup, find_packages

__version__ = "1.0.0"


def _requirements(text: str) -> list[str]:
    return [
        line.strip()
        for line in text.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]


try:
    install_requires = _requirements(
        Path(__file__).with_name("requirements.txt").read_text(encoding="utf8")
    )
except FileNotFoundError:
    install_requires = _requirements(
        """
cryptography>=39.0.0
pyOpenSSL>=23.2.0
certifi
idna
validators
pyyaml
retry
rich
art"""
    )


setup(
    name="tlspin",
    version=__version__,
    description="Certificate and public key pinning for TLS connections.",
    classifiers=[
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    zip_safe=False,
    include_package_data=True,
    install_requires=install_requires,
    extras_require={"tests": ["pytest"]},
    entry_points={
        "console_scripts": ["tlspin=tlspin.cli.__main__:main"],
    },
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={"tlspin.config": ["*.yaml"]},
    python_requires=">=3.9",
    long_description="""
# tlspin

Certificate and public key pinning for TLS connections.

A connection is trusted only when the certificate chain the server presents
matches the pins you ship with your application, instead of whatever a root
CA is willing to sign.

## Basic Usage

`python3 -m pip install -U tlspin`

```py
from pathlib import Path
import tlspin

validator = tlspin.pinned_validator([Path("pins/leaf.cer").read_bytes()])
transport = tlspin.transport.PinnedTransport("example.com", validator)
transport.connect()  # raises ValidationError when the chain is not pinned
```

On the command-line:

```sh
tlspin pins -p pins/
tlspin check -p pins/ -t example.com:443
tlspin check --public-keys -p pins/ -t example.com
```

## Pinning modes

- `certificate` every certificate the server presents must be pinned, and
  the chain must verify against the pinned certificates
- `public_key` any certificate in the presented chain carrying a pinned
  public key is enough, so reissued certificates keep working
    """,
    long_description_content_type="text/markdown",
)
