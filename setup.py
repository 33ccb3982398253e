import setuptools

with open('README.md') as infile:
    long_description = infile.read()

with open('VERSION') as infile:
    version = infile.read().strip()

setuptools.setup(
    name='votechain',
    version=version,
    description='Election lifecycle and tally core for ledger-based voting clients',
    long_description=long_description,
    long_description_content_type='text/markdown; charset=UTF-8',
    python_requires='>=3.8.0',
    packages=setuptools.find_packages(exclude=('tests', 'tests.*')),
    install_requires=[
        'pydantic>=2.0',
        'pydantic-settings>=2.0',
        'web3>=6.0',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': ['votechain=votechain.__main__:main'],
    },
    include_package_data=True,
    license='MIT',
    keywords='voting election vote tally blockchain web3 python',
    classifiers=[
        'Development Status :: 2 - Pre-Alpha',
        'Environment :: Console',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Natural Language :: English',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
    ],
    zip_safe=True
)
