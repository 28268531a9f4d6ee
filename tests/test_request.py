from datetime import timedelta

import pytest

from kangal.envs import InvalidCSVFormatError
from kangal.request import (
    EmptyTypeError,
    FileEmptyError,
    Form,
    FormFile,
    ImageDetails,
    MissingFileError,
    RequestError,
    WrongFileFormatError,
    WrongImageFormatError,
    WrongURLFormatError,
    check_csv_file,
    get_distributed_pods,
    get_duration,
    get_env_vars,
    get_image,
    get_load_test_type,
    get_overwrite,
    get_target_url,
    get_test_data,
    get_test_file,
    get_type_from_name,
    parse_multipart,
)

BOUNDARY = "kangaltestboundary"

LOADTEST_JMX = ("loadtest.jmx", b"load-test file\n")
TESTDATA_CSV = ("testdata.csv", b"test data 1\ntest data 2\n")
ENVVARS_CSV = ("envvars.csv", b"envVar1,value1\nenvVar2,value2\n")
EMPTY_JMX = ("empty.jmx", b"")
EMPTY_CSV = ("empty.csv", b"")


def _multipart(fields, files):
    chunks = []
    for name, value in fields.items():
        chunks.append(
            f'--{BOUNDARY}\r\nContent-Disposition: form-data; name="{name}"\r\n\r\n'.encode()
            + value.encode()
            + b"\r\n"
        )
    for name, (filename, content) in files.items():
        chunks.append(
            (
                f"--{BOUNDARY}\r\n"
                f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
                "Content-Type: application/octet-stream\r\n\r\n"
            ).encode()
            + content
            + b"\r\n"
        )
    chunks.append(f"--{BOUNDARY}--\r\n".encode())
    return b"".join(chunks), f"multipart/form-data; boundary={BOUNDARY}"


def _form(files, distributed_pods="1", load_test_type="JMeter", tags="", master="", worker=""):
    fields = {
        "distributedPods": distributed_pods,
        "tags": tags,
        "type": load_test_type,
        "masterImage": master,
        "workerImage": worker,
    }
    return parse_multipart(*_multipart(fields, files))


def test_parse_multipart_round_trip():
    form = _form({"testFile": LOADTEST_JMX}, distributed_pods="3", tags="team:kangal")
    assert form.value("distributedPods") == "3"
    assert form.value("tags") == "team:kangal"
    assert form.file("testFile") == FormFile("loadtest.jmx", b"load-test file\n")


def test_parse_multipart_missing_value_is_empty():
    form = _form({})
    assert form.value("nothing") == ""


def test_parse_urlencoded():
    form = parse_multipart(b"duration=1m&overwrite=", "application/x-www-form-urlencoded")
    assert form.value("duration") == "1m"
    assert form.value("overwrite") == ""


def test_parse_multipart_without_boundary():
    with pytest.raises(RequestError):
        parse_multipart(b"", "multipart/form-data")


def test_parse_multipart_unterminated():
    body = f'--{BOUNDARY}\r\nContent-Disposition: form-data; name="a"\r\n\r\nx'.encode()
    with pytest.raises(RequestError):
        parse_multipart(body, f"multipart/form-data; boundary={BOUNDARY}")


def test_parse_unsupported_content_type():
    with pytest.raises(RequestError):
        parse_multipart(b"{}", "application/json")


@pytest.mark.parametrize(("value", "expected"), [("JMeter", "JMeter")])
def test_backend_type(value, expected):
    assert get_load_test_type(_form({"testFile": LOADTEST_JMX}, load_test_type=value)) == expected


def test_backend_type_empty():
    with pytest.raises(EmptyTypeError):
        get_load_test_type(_form({"testFile": LOADTEST_JMX}, load_test_type=""))


def test_distributed_pods_valid():
    assert get_distributed_pods(_form({"testFile": LOADTEST_JMX}, distributed_pods="2")) == 2


@pytest.mark.parametrize("value", ["a", "", "aa", "99999999999"])
def test_distributed_pods_invalid(value):
    with pytest.raises(RequestError):
        get_distributed_pods(_form({"testFile": LOADTEST_JMX}, distributed_pods=value))


def test_test_file_valid():
    assert get_test_file(_form({"testFile": LOADTEST_JMX})) == "load-test file\n"


def test_test_file_empty():
    with pytest.raises(FileEmptyError):
        get_test_file(_form({"testFile": EMPTY_JMX}))


def test_test_file_missing():
    with pytest.raises(MissingFileError):
        get_test_file(_form({}))


def test_test_file_wrong_format():
    with pytest.raises(WrongFileFormatError):
        get_test_file(_form({"testFile": ENVVARS_CSV}))


def test_test_data_valid():
    form = _form({"testFile": LOADTEST_JMX, "testData": TESTDATA_CSV})
    assert get_test_data(form) == "test data 1\ntest data 2\n"


def test_test_data_empty():
    with pytest.raises(FileEmptyError):
        get_test_data(_form({"testFile": LOADTEST_JMX, "testData": EMPTY_CSV}))


def test_test_data_missing():
    assert get_test_data(_form({"testFile": LOADTEST_JMX})) == ""


def test_test_data_wrong_format():
    with pytest.raises(WrongFileFormatError):
        get_test_data(_form({"testFile": LOADTEST_JMX, "testData": LOADTEST_JMX}))


def test_env_vars_valid():
    form = _form({"testFile": LOADTEST_JMX, "envVars": ENVVARS_CSV})
    assert get_env_vars(form) == {"envVar1": "value1", "envVar2": "value2"}


def test_env_vars_wrong_format():
    with pytest.raises(WrongFileFormatError):
        get_env_vars(_form({"testFile": LOADTEST_JMX, "envVars": LOADTEST_JMX}))


def test_env_vars_empty():
    with pytest.raises(FileEmptyError):
        get_env_vars(_form({"testFile": LOADTEST_JMX, "envVars": EMPTY_CSV}))


def test_env_vars_missing():
    assert get_env_vars(_form({"testFile": LOADTEST_JMX})) is None


def test_env_vars_bad_columns():
    form = _form({"envVars": ("envvars.csv", b"one\n")})
    with pytest.raises(InvalidCSVFormatError):
        get_env_vars(form)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("1m", timedelta(minutes=1)), ("", timedelta(0))],
)
def test_get_duration(value, expected):
    assert get_duration(Form(values={"duration": [value]})) == expected


def test_get_duration_invalid():
    with pytest.raises(RequestError):
        get_duration(Form(values={"duration": ["1d"]}))


def test_get_target_url_valid():
    form = Form(values={"targetURL": ["https://test-url.com/foo"]})
    assert get_target_url(form) == "https://test-url.com/foo"


@pytest.mark.parametrize("value", ["someurls.com/foo-test", "http://"])
def test_get_target_url_invalid(value):
    with pytest.raises(WrongURLFormatError):
        get_target_url(Form(values={"targetURL": [value]}))


def test_get_target_url_missing():
    assert get_target_url(Form()) == ""


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("hellofresh/kangal-jmeter-master:latest", ImageDetails("hellofresh/kangal-jmeter-master", "latest")),
        ("hellofresh/kangal-jmeter-worker:1.0", ImageDetails("hellofresh/kangal-jmeter-worker", "1.0")),
        ("", ImageDetails("", "")),
        (
            "test.com:5000/hellofresh/hellofreshkangal-jmeter-worker:v1.7",
            ImageDetails("test.com:5000/hellofresh/hellofreshkangal-jmeter-worker", "v1.7"),
        ),
        ("fake/masterImage:v1", ImageDetails("fake/masterImage", "v1")),
        ("this/is/not/a/correct/image:format", ImageDetails("", "")),
    ],
)
def test_get_image(value, expected):
    assert get_image(Form(values={"masterImage": [value]}), "masterImage") == expected


def test_get_image_role_is_respected():
    form = _form({"testFile": LOADTEST_JMX}, worker="fake/workerImage:v1")
    assert get_image(form, "workerImage") == ImageDetails("fake/workerImage", "v1")
    assert get_image(form, "masterImage") == ImageDetails("", "")


@pytest.mark.parametrize("value", ["hellofresh/kangal-jmeter-worker", "a:b\nc"])
def test_get_image_wrong_format(value):
    with pytest.raises(WrongImageFormatError):
        get_image(Form(values={"workerImage": [value]}), "workerImage")


@pytest.mark.parametrize(
    ("value", "expected"),
    [("", False), ("true", True), ("1", True), ("False", False)],
)
def test_get_overwrite(value, expected):
    assert get_overwrite(Form(values={"overwrite": [value]})) is expected


def test_get_overwrite_invalid():
    with pytest.raises(RequestError):
        get_overwrite(Form(values={"overwrite": ["yes"]}))


@pytest.mark.parametrize(
    ("filename", "expected"),
    [("", ""), ("somefile", ""), ("somefile.ext", "ext"), ("somefile.tar.gz", "gz")],
)
def test_get_type_from_name(filename, expected):
    assert get_type_from_name(filename) == expected


def test_check_csv_file_rejects_ragged_rows():
    with pytest.raises(RequestError):
        check_csv_file("a,b\nc\n")


def test_check_csv_file_accepts_consistent_rows():
    assert check_csv_file("a,b\nc,d\n") is None