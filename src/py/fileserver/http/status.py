from http import HTTPStatus

# Reason phrases by status code
HTTP_STATUS: dict[int, str] = {_.value: _.phrase for _ in HTTPStatus}


# EOF
