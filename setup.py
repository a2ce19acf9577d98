from setuptools import setup

from revbisect import __version__

DEPENDENCIES = [
    "colorama>=0.4.1",
    "configobj>=5.0.6",
    "mozinfo>=1.1.0",
    "mozlog>=4.0",
]

TEST_DEPENDENCIES = [
    "coverage",
    "flake8",
    "mock",
    "pytest",
    "pytest-mock",
]

desc = """Find the first bad revision of a git history with a test command"""
long_desc = """Find the first bad revision of a git history.
revbisect checks out revisions of a git working tree, runs a user supplied
test command on each of them (exit code 0 means good, anything else bad) and
bisects the history until the first bad revision is found."""

setup(
    name="revbisect",
    version=__version__,
    description=desc,
    long_description=long_desc,
    license="MPL 2.0",
    packages=["revbisect"],
    entry_points="""
          [console_scripts]
          revbisect = revbisect.main:main
        """,
    platforms=["Any"],
    python_requires=">=3.6",
    install_requires=DEPENDENCIES,
    extras_require={"test": TEST_DEPENDENCIES},
    classifiers=[
        "License :: OSI Approved :: Mozilla Public License 2.0 (MPL 2.0)",
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: Software Development :: Version Control :: Git",
    ],
)
