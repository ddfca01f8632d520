"""Setup script for the citation engine package."""
from setuptools import setup, find_packages

setup(
    name="citation-engine",
    version="1.0.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "python-docx>=0.8.11",
        "aiohttp>=3.8.0",
        "flask>=2.2.0",
        "python-dotenv>=0.19.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.8",
    description="Keeps inline citations and PDF highlights consistent with a shared source catalog",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    keywords="citation annotation highlight bibliography",
    include_package_data=True,
    entry_points={
        "console_scripts": ["citation-engine=citation_engine.__main__:main"],
    },
    classifiers=[
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Topic :: Text Processing :: Markup",
    ],
)
