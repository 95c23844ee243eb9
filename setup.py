from setuptools import setup, find_packages


def get_version():
    f = open('./VERSION', 'r', encoding='utf-8')
    version = f.readline().strip()
    f.close()
    return version


def get_long_descript():
    f = open('./README.rst', 'r', encoding='utf-8')
    long_descript = f.read()
    f.close()
    return long_descript


if __name__ == '__main__':
    setup(name='ws-relay',
          version=get_version(),
          description="A websocket server relaying text messages between clients",
          long_description=get_long_descript(),
          long_description_content_type='text/x-rst',
          python_requires='>=3.10',
          packages=find_packages(include=['wsrelay', 'wsrelay.*']),
          install_requires=['websockets>=13.0'],
          extras_require={'test': ['pytest>=7.0']},
          entry_points={
              'console_scripts': [
                  'ws-relay=wsrelay.cmds:main',
                  'ws-relay-client=wsrelay.client:main',
              ],
          })
