from frame_orders.htmldoc import html_to_text, parse_html


class TestTraversal:
    def test_iter_is_document_order(self):
        doc = parse_html("<div id='a'><p id='b'><span id='c'></span></p><p id='d'></p></div><p id='e'></p>")
        assert [n.get("id") for n in doc.iter()] == ["a", "b", "c", "d", "e"]
        assert [n.get("id") for n in doc.iter("p")] == ["b", "d", "e"]

    def test_find_with_attributes(self):
        doc = parse_html("<table><tr><td class='x y'>1</td><td class='y'>2</td></tr></table>")
        assert doc.find("td", class_="y").text() == "1"
        assert [c.text() for c in doc.find("tr").cells()] == ["1", "2"]


class TestText:
    def test_blocks_cells_and_breaks(self):
        text = html_to_text(
            "<html><head><title>t</title></head><body>"
            "<p>Order #1</p><table><tr><td>A</td><td>B</td></tr></table>one<br>two"
            "<script>var x = 1;</script></body></html>"
        )
        assert text.split("\n") == ["Order #1", "A B", "one", "two"]

    def test_pre_keeps_line_breaks(self):
        assert parse_html("<pre>a\nb</pre>").text() == "a\nb"


class TestDeepNesting:
    def test_thousands_of_levels(self):
        depth = 1500
        doc = parse_html("<div>" * depth + "<span id='leaf'>deep</span>" + "</div>" * depth)
        assert doc.find("span", id="leaf").text() == "deep"
        assert len(doc.find_all("div")) == depth
        assert doc.text() == "deep"
