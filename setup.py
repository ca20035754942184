import os

from setuptools import find_packages, setup

README = os.path.join(os.path.dirname(__file__), "README.md")


def readme() -> str:
    with open(README, encoding="utf-8") as f:
        return f.read()


setup(
    name="code_bridge",
    version="1.0.0",
    description="Merge partial code snippets into existing source files, driven by comment directives",
    long_description=readme(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Code Generators",
        "Topic :: Text Processing",
        "Intended Audience :: Developers",
    ],
    keywords="code merge snippet llm typescript javascript python rust css html tree-sitter",
    license="MIT",
    packages=find_packages(),
    python_requires=">=3.11",
    install_requires=[
        "click>=8.0.0",
        "jinja2>=3.0.0",
        "tree-sitter>=0.22.0",
        "tree-sitter-typescript>=0.21.0",
        "tinycss2>=1.2.0",
        "html5lib>=1.1",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "code-bridge=code_bridge.code_bridge:code_bridge",
        ],
    },
    include_package_data=True,
    package_data={
        "code_bridge": ["templates/**/*.jinja2"],
    },
    zip_safe=False,
)
