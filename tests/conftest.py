"""
Shared pytest fixtures for the Titanic pipeline tests.
"""

import pytest

from csv_parser import parse_csv, records_to_frame
from tests.helpers import make_record

TRAIN_CSV = """PassengerId,Survived,Pclass,Name,Sex,Age,SibSp,Parch,Ticket,Fare,Cabin,Embarked
1,0,3,"Braund, Mr. Owen Harris",male,22,1,0,A/5 21171,7.25,,S
2,1,1,"Cumings, Mrs. John Bradley (Florence Briggs Thayer)",female,38,1,0,PC 17599,71.2833,C85,C
3,1,3,"Heikkinen, Miss. Laina",female,26,0,0,STON/O2. 3101282,7.925,,S
4,1,1,"Futrelle, Mrs. Jacques Heath (Lily May Peel)",female,35,1,0,113803,53.1,C123,S
5,0,3,"Allen, Mr. William Henry",male,35,0,0,373450,8.05,,S
6,0,3,"Moran, Mr. James",male,,0,0,330877,8.4583,,Q
7,0,1,"McCarthy, Mr. Timothy J",male,54,0,0,17463,51.8625,E46,S
8,0,3,"Palsson, Master. Gosta Leonard",male,2,3,1,349909,21.075,,S
9,1,3,"Johnson, Mrs. Oscar W (Elisabeth Vilhelmina Berg)",female,27,0,2,347742,11.1333,,S
10,1,2,"Nasser, Mrs. Nicholas (Adele Achem)",female,14,1,0,237736,30.0708,,C
"""

TEST_CSV = """PassengerId,Pclass,Name,Sex,Age,SibSp,Parch,Ticket,Fare,Cabin,Embarked
892,3,"Kelly, Mr. James",male,34.5,0,0,330911,7.8292,,Q
893,3,"Wilkes, Mrs. James (Ellen Needs)",female,47,1,0,363272,7,,S
894,2,"Myles, Mr. Thomas Francis",male,62,0,0,240276,9.6875,,Q
895,3,"Wirz, Mr. Albert",male,,0,0,315154,,,
"""


@pytest.fixture
def train_csv():
    return TRAIN_CSV


@pytest.fixture
def test_csv():
    return TEST_CSV


@pytest.fixture
def train_records():
    return parse_csv(TRAIN_CSV)


@pytest.fixture
def test_records():
    return parse_csv(TEST_CSV)


@pytest.fixture
def train_frame(train_records):
    return records_to_frame(train_records)


@pytest.fixture
def example_records():
    """Two-passenger training set where only the first has a known age."""
    return [
        make_record(Age=22, Fare=7.25, Pclass=3, Sex="male", SibSp=1, Parch=0,
                    Embarked="S", Survived=1),
        make_record(Age=None, Fare=71.28, Pclass=1, Sex="female", SibSp=1, Parch=0,
                    Embarked="C", Survived=1),
    ]
